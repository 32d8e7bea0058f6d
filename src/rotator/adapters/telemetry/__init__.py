from .console import ConsoleTelemetrySink
from .db_journal import DbExecutionJournalSink
from .memory import InMemoryTelemetrySink
from .otel_spans import OtelSpanSink

__all__ = [
    "ConsoleTelemetrySink",
    "DbExecutionJournalSink",
    "InMemoryTelemetrySink",
    "OtelSpanSink",
]

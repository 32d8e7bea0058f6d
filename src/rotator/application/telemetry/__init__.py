from .event_factory import make_event, make_run_id
from .hub import TelemetryHub
from .run_context import RunTelemetry

__all__ = [
    "make_event",
    "make_run_id",
    "TelemetryHub",
    "RunTelemetry",
]

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from opentelemetry import trace as otel_trace
from opentelemetry.trace.status import Status, StatusCode

from rotator.adapters.telemetry.filtering import accepts
from rotator.ports.telemetry import TelemetryEvent, TelemetryLevel, TelemetrySink

_log = logging.getLogger(__name__)

RUN_STARTED = "run.started"
RUN_FINISHED = "run.finished"


def _attr(v: Any) -> Any:
    if isinstance(v, (str, bool, int, float)):
        return v
    return json.dumps(v, default=str, separators=(",", ":"))


def build_tracer_provider(service_name: str = "rotator", console_export: bool = False):
    """SDK tracer provider; spans go to stdout when `console_export` is set."""
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider


@dataclass(slots=True)
class OtelSpanSink(TelemetrySink):
    """Maps each run_id to one OpenTelemetry span.

    `run.started` opens the span, every other event becomes a span event and
    `run.finished` ends it. ERROR events mark the span as failed.
    """

    tracer_provider: Any = None
    enabled_flag: bool = True
    channels: set[str] = field(default_factory=lambda: {"audit", "ops"})
    min_level: TelemetryLevel = TelemetryLevel.INFO

    _tracer: Any = field(default=None, init=False, repr=False)
    _spans: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def _get_tracer(self):
        if self._tracer is None:
            provider = self.tracer_provider or otel_trace.get_tracer_provider()
            self._tracer = provider.get_tracer("rotator.runs")
        return self._tracer

    def enabled(self, channel: str, level: TelemetryLevel, name: str | None = None) -> bool:
        if name in (RUN_STARTED, RUN_FINISHED):
            return self.enabled_flag
        return accepts(self.enabled_flag, self.channels, self.min_level, channel, level)

    def emit(self, event: TelemetryEvent) -> None:
        attrs = {f"rotator.{k}": _attr(v) for k, v in dict(event.scope or {}).items()}
        attrs.update({k: _attr(v) for k, v in dict(event.payload or {}).items()})

        if event.name == RUN_STARTED:
            span = self._get_tracer().start_span("strategy.run", attributes=attrs)
            span.set_attribute("rotator.run_id", event.run_id)
            self._spans[event.run_id] = span
            return

        span = self._spans.get(event.run_id)
        if span is None:
            _log.debug("event %s for unknown run %s", event.name, event.run_id)
            return

        if event.name == RUN_FINISHED:
            self._spans.pop(event.run_id, None)
            if attrs.get("success") is False:
                span.set_status(Status(StatusCode.ERROR, str(attrs.get("error") or "")))
            else:
                span.set_status(Status(StatusCode.OK))
            span.set_attributes(attrs)
            span.end()
            return

        span.add_event(event.name, attributes=attrs)
        if event.level is TelemetryLevel.ERROR:
            span.set_status(Status(StatusCode.ERROR, str(attrs.get("error") or event.name)))

    def close(self) -> None:
        for span in list(self._spans.values()):
            span.end()
        self._spans.clear()
        flush = getattr(self.tracer_provider, "force_flush", None)
        if callable(flush):
            flush()

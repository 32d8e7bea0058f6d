from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from rotator.application.telemetry.event_factory import make_event
from rotator.ports.telemetry import AUDIT, DEBUG, OPS, TelemetryLevel, TelemetryPort


@dataclass(slots=True)
class RunTelemetry:
    """Produces consistent events for a single strategy run."""

    port: TelemetryPort | None
    run_id: str
    base_scope: Mapping[str, Any] | None = None

    def enabled(self, channel: str, level: str | TelemetryLevel) -> bool:
        if self.port is None:
            return False
        return self.port.enabled(channel, level)

    def emit(
        self,
        *,
        name: str,
        channel: str = OPS,
        level: str | TelemetryLevel = TelemetryLevel.INFO,
        scope: Mapping[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        if self.port is None:
            return

        merged_scope = dict(self.base_scope or {})
        if scope:
            merged_scope.update(dict(scope))

        try:
            self.port.emit(
                make_event(
                    run_id=self.run_id,
                    name=name,
                    level=level,
                    channel=channel,
                    scope=merged_scope,
                    payload=payload,
                )
            )
        except Exception:
            # telemetry never breaks a run
            return

    def audit(self, name: str, payload: Mapping[str, Any] | None = None) -> None:
        self.emit(name=name, channel=AUDIT, payload=payload)

    def debug(self, name: str, payload: Mapping[str, Any] | None = None) -> None:
        if self.enabled(DEBUG, TelemetryLevel.DEBUG):
            self.emit(name=name, channel=DEBUG, level=TelemetryLevel.DEBUG, payload=payload)

    @contextmanager
    def stage(self, stage: str, **payload: Any) -> Iterator[None]:
        """Wrap one pipeline stage in `<stage>.started/finished/failed` events."""
        t0 = time.perf_counter()
        scope = {"stage": stage}
        self.emit(name=f"{stage}.started", level=TelemetryLevel.DEBUG, scope=scope, payload=payload)
        try:
            yield
        except Exception as e:
            self.emit(
                name=f"{stage}.failed",
                level=TelemetryLevel.ERROR,
                scope=scope,
                payload={"error": str(e), "error_type": type(e).__name__,
                         "duration_ms": round((time.perf_counter() - t0) * 1000, 2)},
            )
            raise
        self.emit(
            name=f"{stage}.finished",
            scope=scope,
            payload={"duration_ms": round((time.perf_counter() - t0) * 1000, 2)},
        )

    def child(self, scope: Mapping[str, Any]) -> "RunTelemetry":
        merged = dict(self.base_scope or {})
        merged.update(dict(scope or {}))
        return RunTelemetry(port=self.port, run_id=self.run_id, base_scope=merged)

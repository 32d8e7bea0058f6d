from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping

from rotator.ports.telemetry import TelemetryEvent, TelemetryLevel, TelemetryPort, TelemetrySink

_log = logging.getLogger(__name__)


@dataclass(slots=True)
class TelemetryHub(TelemetryPort):
    """Forwards events to every sink that accepts them.

    One hub is shared by all concurrent strategy runs, so sink calls are
    serialised with a lock. A failing sink is logged and skipped.
    """

    sinks: list[TelemetrySink]
    base_scope: Mapping[str, Any] | None = None
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def emit(self, event: TelemetryEvent) -> None:
        scope = dict(self.base_scope or {})
        if event.scope:
            scope.update(dict(event.scope))
        merged = TelemetryEvent(
            ts_utc=event.ts_utc,
            run_id=event.run_id,
            name=event.name,
            level=event.level,
            channel=event.channel,
            scope=scope,
            payload=dict(event.payload or {}),
            schema_version=event.schema_version,
        )

        with self._lock:
            for s in list(self.sinks):
                try:
                    if s.enabled(merged.channel, merged.level, merged.name):
                        s.emit(merged)
                except Exception:
                    _log.debug("telemetry sink %r failed", s, exc_info=True)

    def enabled(self, channel: str, level: str | TelemetryLevel) -> bool:
        lv = TelemetryLevel.coerce(level)
        for s in list(self.sinks):
            try:
                if s.enabled(str(channel), lv, None):
                    return True
            except Exception:
                continue
        return False

    def child(self, scope: Mapping[str, Any]) -> "TelemetryHub":
        merged = dict(self.base_scope or {})
        merged.update(dict(scope or {}))
        return TelemetryHub(sinks=self.sinks, base_scope=merged, _lock=self._lock)

    def close(self) -> None:
        for s in list(self.sinks):
            close = getattr(s, "close", None)
            if callable(close):
                try:
                    close()
                except Exception:
                    _log.debug("closing telemetry sink %r failed", s, exc_info=True)

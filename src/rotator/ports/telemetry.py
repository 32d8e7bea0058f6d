from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol


class TelemetryLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @classmethod
    def coerce(cls, value: str | "TelemetryLevel") -> "TelemetryLevel":
        if isinstance(value, TelemetryLevel):
            return value
        v = (value or "INFO").upper().strip()
        if v == "WARNING":
            v = "WARN"
        try:
            return TelemetryLevel(v)
        except ValueError:
            return TelemetryLevel.INFO

    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {
    TelemetryLevel.DEBUG: 10,
    TelemetryLevel.INFO: 20,
    TelemetryLevel.WARN: 30,
    TelemetryLevel.ERROR: 40,
}

# channels
OPS = "ops"
AUDIT = "audit"
DEBUG = "debug"


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """One structured event of a strategy run.

    `scope` carries who/where (user_id, strategy_id, stage), `payload` what
    happened. Both must be JSON-serialisable.
    """

    ts_utc: datetime
    run_id: str
    name: str
    level: TelemetryLevel
    channel: str
    scope: Mapping[str, Any] | None
    payload: Mapping[str, Any]
    schema_version: int = 1


class TelemetrySink(Protocol):
    """Adapter-side destination for events (console, journal, tracer...)."""

    def enabled(self, channel: str, level: TelemetryLevel, name: str | None = None) -> bool: ...

    def emit(self, event: TelemetryEvent) -> None: ...


class TelemetryPort(Protocol):
    def emit(self, event: TelemetryEvent) -> None: ...

    def enabled(self, channel: str, level: str | TelemetryLevel) -> bool: ...

    def child(self, scope: Mapping[str, Any]) -> "TelemetryPort": ...

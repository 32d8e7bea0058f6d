from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from rotator.adapters.telemetry.filtering import accepts
from rotator.ports.telemetry import TelemetryEvent, TelemetryLevel, TelemetrySink


@dataclass(slots=True)
class InMemoryTelemetrySink(TelemetrySink):
    """Keeps events in a list so tests can assert on them."""

    enabled_flag: bool = True
    channels: set[str] = field(default_factory=lambda: {"audit", "ops", "debug"})
    min_level: TelemetryLevel = TelemetryLevel.DEBUG
    events: list[TelemetryEvent] = field(default_factory=list)

    def enabled(self, channel: str, level: TelemetryLevel, name: str | None = None) -> bool:
        return accepts(self.enabled_flag, self.channels, self.min_level, channel, level)

    def emit(self, event: TelemetryEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def by_name(self, name: str) -> List[TelemetryEvent]:
        return [e for e in self.events if e.name == name]

from __future__ import annotations

from typing import Iterable

from rotator.ports.telemetry import TelemetryLevel


def accepts(
    enabled_flag: bool,
    channels: Iterable[str],
    min_level: TelemetryLevel | str,
    channel: str,
    level: TelemetryLevel | str,
) -> bool:
    """Shared channel/level gate used by every sink."""
    if not enabled_flag:
        return False
    if channel not in channels:
        return False
    return TelemetryLevel.coerce(level).rank() >= TelemetryLevel.coerce(min_level).rank()

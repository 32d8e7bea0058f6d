from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from rotator.ports.telemetry import TelemetryEvent, TelemetryLevel

_ID_SAFE_RE = re.compile(r"[^a-zA-Z0-9._-]+")


def _id_part(value: str, fallback: str) -> str:
    return _ID_SAFE_RE.sub("_", str(value or fallback))[:40]


def make_run_id(user_id: str, strategy_id: str, ts_utc: datetime | None = None) -> str:
    """<user>-<strategy>-<YYYYmmddHHMMSS>-<4 hex>, safe for file names and keys."""
    ts = (ts_utc or datetime.now(timezone.utc)).astimezone(timezone.utc)
    suffix = uuid.uuid4().hex[:4]
    return f"{_id_part(user_id, 'user')}-{_id_part(strategy_id, 'strategy')}-{ts:%Y%m%d%H%M%S}-{suffix}"


def make_event(
    *,
    run_id: str,
    name: str,
    level: str | TelemetryLevel,
    channel: str,
    scope: Mapping[str, Any] | None = None,
    payload: Mapping[str, Any] | None = None,
) -> TelemetryEvent:
    """Stamp an event with the current UTC time and a normalised level."""
    return TelemetryEvent(
        ts_utc=datetime.now(timezone.utc),
        run_id=str(run_id),
        name=str(name),
        level=TelemetryLevel.coerce(level),
        channel=str(channel),
        scope=dict(scope or {}),
        payload=dict(payload or {}),
    )

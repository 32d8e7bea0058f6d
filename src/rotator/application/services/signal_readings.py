from __future__ import annotations

import logging
from typing import List, Sequence

from rotator.application.telemetry import RunTelemetry
from rotator.domain.signals.entities import SignalCondition, SignalReading
from rotator.domain.signals.fear_greed import classify
from rotator.ports.signals import SignalPort
from rotator.ports.telemetry import TelemetryLevel
from rotator.shared.config import AppConfig

_log = logging.getLogger(__name__)


def fetch_signal_readings(
    conditions: Sequence[SignalCondition],
    signals: SignalPort | None,
    app_cfg: AppConfig,
    telemetry: RunTelemetry | None = None,
) -> List[SignalReading]:
    """One reading per distinct source referenced by `conditions`.

    A source that cannot be fetched is left out; conditions on it are then
    simply not satisfied.
    """
    readings: List[SignalReading] = []
    if signals is None:
        return readings

    seen: set[str] = set()
    for cond in conditions:
        if cond.source_id in seen:
            continue
        seen.add(cond.source_id)

        source = app_cfg.signal_source(cond.source_id)
        if source is None:
            kind, params = "builtin", {"builtin": cond.source_id}
        else:
            kind, params = source.kind, source.model_dump()

        try:
            fetched = signals.fetch_signal(kind, params)
        except Exception as e:
            _log.warning("signal %s unavailable: %s", cond.source_id, e)
            if telemetry is not None:
                telemetry.emit(
                    name="signals.fetch_failed",
                    level=TelemetryLevel.WARN,
                    payload={"source_id": cond.source_id, "error": str(e)},
                )
            continue

        reading = SignalReading(
            source_id=cond.source_id,
            value=float(fetched.value),
            fetched_at=fetched.fetched_at,
            raw=fetched.raw,
        )
        readings.append(reading)
        if telemetry is not None:
            payload = {"source_id": reading.source_id, "value": reading.value}
            if reading.source_id.startswith("fear_greed"):
                payload["classification"] = classify(reading.value)
            telemetry.audit("signals.reading", payload)
    return readings

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Sequence

from rotator.domain.signals.entities import (
    ConditionType,
    GateAction,
    Operator,
    SignalCondition,
    SignalReading,
)


def evaluate(value: float, operator: Operator | str, threshold: float) -> bool:
    op = Operator(operator)
    if op is Operator.GT:
        return value > threshold
    if op is Operator.GTE:
        return value >= threshold
    if op is Operator.LT:
        return value < threshold
    if op is Operator.LTE:
        return value <= threshold
    if op is Operator.EQ:
        return value == threshold
    return value != threshold


def readings_by_source(readings: Iterable[SignalReading]) -> Dict[str, SignalReading]:
    # the last reading for a source wins
    out: Dict[str, SignalReading] = {}
    for r in readings:
        out[r.source_id] = r
    return out


def _is_satisfied(cond: SignalCondition, readings: Mapping[str, SignalReading]) -> bool:
    reading = readings.get(cond.source_id)
    if reading is None:
        return False
    return evaluate(float(reading.value), cond.operator, float(cond.threshold))


def trading_allowed(
    conditions: Sequence[SignalCondition],
    readings: Mapping[str, SignalReading],
) -> bool:
    """False as soon as one satisfied gate asks to skip trading."""
    for cond in conditions:
        if cond.type is not ConditionType.GATE:
            continue
        if _is_satisfied(cond, readings) and cond.action is GateAction.SKIP_TRADING:
            return False
    return True


def satisfied_modifiers(
    conditions: Sequence[SignalCondition],
    readings: Mapping[str, SignalReading],
) -> Dict[str, float]:
    """Multipliers of satisfied position modifiers, keyed by source id.

    Several modifiers on the same source multiply together.
    """
    out: Dict[str, float] = {}
    for cond in conditions:
        if cond.type is not ConditionType.POSITION_MODIFIER:
            continue
        if _is_satisfied(cond, readings):
            out[cond.source_id] = out.get(cond.source_id, 1.0) * float(cond.multiplier)
    return out


def position_modifier(modifiers: Mapping[str, float]) -> float:
    acc = 1.0
    for m in modifiers.values():
        acc *= float(m)
    return acc

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Sequence

from rotator.application.plugins.registry import get_allocator
from rotator.domain.portfolio.capping import apply_max_weight_cap
from rotator.domain.portfolio.entities import (
    CurrentPosition,
    RankedSymbol,
    TargetCalculationResult,
    TargetPosition,
)
from rotator.domain.signals.conditions import (
    position_modifier,
    readings_by_source,
    satisfied_modifiers,
    trading_allowed,
)
from rotator.domain.signals.entities import SignalReading

if TYPE_CHECKING:
    from rotator.application.strategy.config import ExecutionConfig


def _side_weights(candidates: Sequence[RankedSymbol], scheme: str, max_weight: float) -> List[float]:
    weights = get_allocator(scheme).weights(candidates)
    if max_weight < 1.0:
        weights = apply_max_weight_cap(weights, max_weight)
    return weights


def calculate_target_positions(
    ranked: Sequence[RankedSymbol],
    execution_config: "ExecutionConfig",
    total_equity: float,
    current_positions: Sequence[CurrentPosition],
    signal_readings: Sequence[SignalReading],
) -> TargetCalculationResult:
    """
    Turn the ranked selection into dollar targets.

    A satisfied skip-trading gate short-circuits with no targets at all, so
    the order generator closes everything the strategy holds. Otherwise the
    investable amount (equity minus cash reserve, times the product of the
    satisfied position modifiers) is split per side by the configured weight
    scheme and capped per symbol.
    """
    conditions = list(execution_config.signal_conditions)
    readings = readings_by_source(signal_readings)
    modifiers = satisfied_modifiers(conditions, readings)
    cash_reserve = float(total_equity) * float(execution_config.cash_reserve_pct)

    if not trading_allowed(conditions, readings):
        return TargetCalculationResult(
            targets=[],
            total_equity=float(total_equity),
            cash_reserve=cash_reserve,
            investable_amount=0.0,
            position_modifier=position_modifier(modifiers),
            signal_modifiers=modifiers,
            gated=True,
        )

    modifier = position_modifier(modifiers)
    investable = (float(total_equity) - cash_reserve) * modifier

    scheme = str(getattr(execution_config.weight_scheme, "value", execution_config.weight_scheme))
    max_weight = float(execution_config.max_weight_per_symbol)

    longs = [r for r in ranked if r.side == "long"]
    shorts = [r for r in ranked if r.side == "short"]

    by_symbol: Dict[str, CurrentPosition] = {p.symbol: p for p in current_positions}

    targets: List[TargetPosition] = []
    for side, candidates in (("long", longs), ("short", shorts)):
        weights = _side_weights(candidates, scheme, max_weight)
        for cand, w in zip(candidates, weights):
            value = investable * w
            pos = by_symbol.get(cand.symbol)
            targets.append(
                TargetPosition(
                    symbol=cand.symbol,
                    side=side,
                    target_weight=w,
                    target_value=value if side == "long" else -value,
                    current_value=float(pos.market_value) if pos else 0.0,
                    current_shares=float(pos.qty) if pos else 0.0,
                    score=float(cand.score),
                )
            )

    return TargetCalculationResult(
        targets=targets,
        total_equity=float(total_equity),
        cash_reserve=cash_reserve,
        investable_amount=investable,
        position_modifier=modifier,
        signal_modifiers=modifiers,
    )

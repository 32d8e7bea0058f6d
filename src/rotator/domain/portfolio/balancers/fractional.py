from __future__ import annotations

from typing import List, Sequence

from rotator.application.plugins.registry import register_balancer
from rotator.domain.portfolio.balancers.base import BaseBalancer
from rotator.domain.portfolio.entities import (
    CurrentPosition,
    RebalanceOrder,
    RebalanceResult,
    TargetPosition,
)

FLAT_EPSILON = 0.01


def _adjust_reason(target: TargetPosition, buying: bool, step_pct: str) -> str:
    weight_pct = f"{abs(target.target_weight) * 100:.1f}"
    if target.side == "short":
        if buying:
            verb = "Cover"
        else:
            verb = "Increase" if target.current_value < 0 else "Open"
    else:
        if buying:
            verb = "Increase" if target.current_value > 0 else "Open"
        else:
            verb = "Reduce"
    return f"{verb} {target.side} position toward {weight_pct}% target ({step_pct}% step)"


@register_balancer(name="fractional", tags={"default"})
class FractionalBalancer(BaseBalancer):
    """
    Moves every position a fixed fraction of the way from its current value
    to its target value. Holdings that are no longer targeted are wound down
    by the same fraction. Sells are listed before buys so cash is freed
    before it is spent.
    """
    def plan(
        self,
        targets: Sequence[TargetPosition],
        current_positions: Sequence[CurrentPosition],
        rebalance_fraction: float = 1.0,
        min_trade_size: float = 1.0,
    ) -> RebalanceResult:
        fraction = max(0.0, min(1.0, float(rebalance_fraction)))
        step_pct = f"{fraction * 100:.0f}"
        target_symbols = {t.symbol for t in targets}

        orders: List[RebalanceOrder] = []
        to_close: List[str] = []

        for pos in current_positions:
            if pos.symbol in target_symbols:
                continue
            mv = float(pos.market_value)
            if abs(mv) < FLAT_EPSILON:
                continue
            # exits are not subject to min_trade_size
            notional = abs(mv) * fraction
            to_close.append(pos.symbol)
            kind = "short" if mv < 0 else "long"
            orders.append(
                RebalanceOrder(
                    symbol=pos.symbol,
                    side="buy" if mv < 0 else "sell",
                    notional=notional,
                    reason=f"Close {kind} position not in target set ({step_pct}% step)",
                )
            )

        for t in targets:
            diff = (float(t.target_value) - float(t.current_value)) * fraction
            if abs(diff) < min_trade_size:
                continue
            buying = diff > 0
            orders.append(
                RebalanceOrder(
                    symbol=t.symbol,
                    side="buy" if buying else "sell",
                    notional=abs(diff),
                    reason=_adjust_reason(t, buying, step_pct),
                    is_short_target=t.side == "short",
                )
            )

        sells = [o for o in orders if o.side == "sell"]
        buys = [o for o in orders if o.side == "buy"]
        return RebalanceResult(
            orders=sells + buys,
            total_buy_notional=sum(o.notional for o in buys),
            total_sell_notional=sum(o.notional for o in sells),
            symbols_to_close=to_close,
        )


def calculate_rebalance_orders(
    targets: Sequence[TargetPosition],
    current_positions: Sequence[CurrentPosition],
    rebalance_fraction: float = 1.0,
    min_trade_size: float = 1.0,
) -> RebalanceResult:
    return FractionalBalancer().plan(targets, current_positions, rebalance_fraction, min_trade_size)

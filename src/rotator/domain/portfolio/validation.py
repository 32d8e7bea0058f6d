from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

from rotator.domain.portfolio.entities import RebalanceOrder, ValidationResult


def validate_orders(orders: Sequence[RebalanceOrder], buying_power: float) -> ValidationResult:
    """
    Scale every buy down by the same factor when the buys together exceed
    the available buying power. Sells are never touched.
    """
    total_buy = sum(float(o.notional) for o in orders if o.side == "buy")
    buying_power = float(buying_power)

    if total_buy <= buying_power:
        return ValidationResult(valid=True, orders=list(orders), message="All orders can be executed")

    scale = max(0.0, buying_power) / total_buy
    pct = scale * 100
    out: List[RebalanceOrder] = []
    for o in orders:
        if o.side != "buy":
            out.append(o)
            continue
        out.append(replace(o, notional=o.notional * scale, reason=f"{o.reason} (scaled to {pct:.0f}%)"))

    return ValidationResult(
        valid=False,
        orders=out,
        message=f"Insufficient buying power. Orders scaled to {pct:.1f}%",
        scale_factor=scale,
    )

from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol, Optional

from rotator.shared.types import OrderSide


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """Market order sized either by dollar `notional` or share `qty`."""
    symbol: str
    side: OrderSide
    notional: Optional[float] = None
    qty: Optional[float] = None
    type: str = "market"
    time_in_force: str = "day"


@dataclass
class TradeResult:
    ok: bool
    order_id: Optional[str]
    message: str
    not_fractionable: bool = False


class TradingPort(Protocol):
    def place_order(self, request: OrderRequest) -> TradeResult: ...

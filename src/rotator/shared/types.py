from __future__ import annotations
from typing import Literal

OrderSide = Literal["buy", "sell"]
PositionSide = Literal["long", "short"]
OrderStatus = Literal["success", "failed", "simulated", "skipped"]
MarketStatus = Literal["open", "closed"]

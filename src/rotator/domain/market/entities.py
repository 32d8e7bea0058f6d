from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """Point-in-time account balances, in account currency."""

    equity: float
    buying_power: float
    cash: float
    last_equity: float = 0.0


@dataclass(frozen=True, slots=True)
class BrokerPosition:
    """A position exactly as the broker reports it.

    `symbol` is the broker's own spelling (e.g. "BTCUSD" for crypto) and
    `market_value` may be unsigned even for shorts. Normalisation into
    `CurrentPosition` happens at the ownership boundary.
    """

    symbol: str
    qty: float
    market_value: float
    current_price: float


@dataclass(frozen=True, slots=True)
class MarketClock:
    is_open: bool
    timestamp: datetime | None = None


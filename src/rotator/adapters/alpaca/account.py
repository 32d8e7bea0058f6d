from __future__ import annotations

from typing import List

from rotator.adapters.alpaca.client import AlpacaClient
from rotator.domain.market.entities import AccountSnapshot, BrokerPosition, MarketClock
from rotator.ports.account import AccountPort


def _f(v, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


class AlpacaAccount(AccountPort):
    def __init__(self, client: AlpacaClient):
        self.client = client

    def is_paper(self) -> bool:
        return self.client.is_paper()

    def account(self) -> AccountSnapshot:
        a = self.client.call(self.client.api.get_account)
        return AccountSnapshot(
            equity=_f(a.equity),
            buying_power=_f(a.buying_power),
            cash=_f(a.cash),
            last_equity=_f(getattr(a, "last_equity", 0.0)),
        )

    def positions(self) -> List[BrokerPosition]:
        out: List[BrokerPosition] = []
        for p in self.client.call(self.client.api.list_positions):
            out.append(
                BrokerPosition(
                    symbol=str(p.symbol),
                    qty=_f(p.qty),
                    market_value=_f(p.market_value),
                    current_price=_f(p.current_price),
                )
            )
        return out

    def clock(self) -> MarketClock:
        c = self.client.call(self.client.api.get_clock)
        return MarketClock(is_open=bool(c.is_open), timestamp=getattr(c, "timestamp", None))

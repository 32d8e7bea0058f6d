from __future__ import annotations
from typing import Protocol, List

from rotator.domain.market.entities import AccountSnapshot, BrokerPosition, MarketClock


class AccountPort(Protocol):
    def is_paper(self) -> bool: ...
    def account(self) -> AccountSnapshot: ...
    def positions(self) -> List[BrokerPosition]: ...
    def clock(self) -> MarketClock: ...

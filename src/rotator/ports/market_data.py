from __future__ import annotations
from typing import Protocol
import pandas as pd


class MarketDataPort(Protocol):
    def get_bars(self, symbol: str, timeframe: str = "1Day", limit: int = 60) -> pd.DataFrame:
        """Frame with columns time, open, high, low, close, volume, oldest first."""
        ...

    def latest_price(self, symbol: str) -> float | None: ...

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pandas as pd
from alpaca_trade_api.rest import TimeFrame, TimeFrameUnit

from rotator.adapters.alpaca.client import AlpacaClient
from rotator.domain.market.symbols import is_crypto
from rotator.ports.market_data import MarketDataPort

COLUMNS = ["time", "open", "high", "low", "close", "volume"]

_TIMEFRAMES = {
    "1Min": TimeFrame(1, TimeFrameUnit.Minute),
    "5Min": TimeFrame(5, TimeFrameUnit.Minute),
    "15Min": TimeFrame(15, TimeFrameUnit.Minute),
    "1Hour": TimeFrame(1, TimeFrameUnit.Hour),
    "1Day": TimeFrame(1, TimeFrameUnit.Day),
}


def _calendar_days(timeframe: str, limit: int) -> int:
    # enough calendar days to cover `limit` trading bars
    if timeframe == "1Day":
        return int(limit * 1.5) + 7
    return 7


class AlpacaMarketData(MarketDataPort):
    def __init__(self, client: AlpacaClient):
        self.client = client

    def get_bars(self, symbol: str, timeframe: str = "1Day", limit: int = 60) -> pd.DataFrame:
        tf = _TIMEFRAMES.get(timeframe)
        if tf is None:
            raise ValueError(f"unsupported timeframe: {timeframe!r}")
        start = (datetime.now(timezone.utc) - timedelta(days=_calendar_days(timeframe, limit))).date().isoformat()
        api = self.client.api
        if is_crypto(symbol):
            bars = self.client.call(api.get_crypto_bars, symbol, tf, start=start)
        else:
            bars = self.client.call(api.get_bars, symbol, tf, start=start, feed=self.client.data_feed)

        df = bars.df
        if df is None or df.empty:
            return pd.DataFrame(columns=COLUMNS)
        df = df.reset_index().rename(columns={"timestamp": "time"})
        df = df[[c for c in COLUMNS if c in df.columns]].sort_values("time")
        return df.tail(int(limit)).reset_index(drop=True)

    def latest_price(self, symbol: str) -> float | None:
        df = self.get_bars(symbol, "1Day", limit=1)
        if df.empty:
            return None
        return float(df["close"].iloc[-1])

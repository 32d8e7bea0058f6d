from __future__ import annotations

import pandas as pd

from rotator.application.plugins.registry import register_factor
from rotator.domain.ranking.factors.base import BaseFactor


@register_factor(name="momentum", tags={"default", "trend"})
@register_factor(name="return", tags={"trend"})
@register_factor(name="momentum_5d", tags={"trend"}, window=5)
@register_factor(name="momentum_10d", tags={"trend"}, window=10)
@register_factor(name="momentum_20d", tags={"trend"}, window=20)
@register_factor(name="momentum_60d", tags={"trend"}, window=60)
class Momentum(BaseFactor):
    """
    Percentage return from the first to the last close. With a `window`,
    only the last `window` bars count (the whole frame when shorter).
    """
    window: int | None = None

    def compute(self, df: pd.DataFrame) -> float | None:
        if df.empty:
            return None
        close = df["close"].astype(float)
        if self.window is not None and len(close) > self.window:
            close = close.iloc[-self.window:]
        first = float(close.iloc[0])
        last = float(close.iloc[-1])
        if first == 0:
            return None
        return (last - first) / first * 100.0

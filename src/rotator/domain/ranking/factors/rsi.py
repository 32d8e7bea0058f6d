from __future__ import annotations

import pandas as pd

from rotator.application.plugins.registry import register_factor
from rotator.domain.ranking.factors.base import BaseFactor


@register_factor(name="rsi", tags={"default", "oscillator"})
class RSI14(BaseFactor):
    """
    Simple-average RSI over the last `period` close-to-close changes.
    Neutral 50 when there is not enough history, 100 when nothing fell.
    """
    period = 14

    def compute(self, df: pd.DataFrame) -> float | None:
        if df.empty:
            return None
        if len(df) < self.period + 1:
            return 50.0
        close = df["close"].astype(float)
        changes = close.diff().dropna().iloc[-self.period:]
        avg_gain = float(changes.clip(lower=0).sum()) / self.period
        avg_loss = float((-changes).clip(lower=0).sum()) / self.period
        if avg_loss == 0:
            return 100.0
        rs = avg_gain / avg_loss
        return 100.0 - 100.0 / (1.0 + rs)

from __future__ import annotations

import math

import pandas as pd

from rotator.application.plugins.registry import register_factor
from rotator.domain.ranking.factors.base import BaseFactor

TRADING_DAYS = 252


@register_factor(name="volatility", inverse=True, tags={"default", "risk"})
class AnnualizedVolatility(BaseFactor):
    """Population std of daily close-to-close returns, annualised, in percent."""

    def compute(self, df: pd.DataFrame) -> float | None:
        if df.empty or len(df) < 2:
            return None
        close = df["close"].astype(float)
        # a zero close yields an infinite return; drop it
        returns = close.pct_change().replace([math.inf, -math.inf], float("nan")).dropna()
        if returns.empty:
            return None
        sigma = float(returns.std(ddof=0))
        return sigma * math.sqrt(TRADING_DAYS) * 100.0

from __future__ import annotations

import pandas as pd

from rotator.application.plugins.registry import register_factor
from rotator.domain.ranking.factors.base import BaseFactor


@register_factor(name="volume", tags={"default", "liquidity"})
class AverageVolume(BaseFactor):

    def compute(self, df: pd.DataFrame) -> float | None:
        if df.empty or "volume" not in df.columns:
            return None
        return float(df["volume"].astype(float).mean())

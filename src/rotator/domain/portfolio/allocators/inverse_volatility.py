from __future__ import annotations

from typing import List, Sequence

from rotator.application.plugins.registry import register_allocator
from rotator.domain.portfolio.allocators.base import BaseAllocator
from rotator.domain.portfolio.entities import RankedSymbol

DEFAULT_VOLATILITY = 20.0


@register_allocator(name="inverse_volatility", tags={"default", "risk"})
class InverseVolatilityAllocator(BaseAllocator):
    """
    Weight proportional to 1 / volatility. Candidates ranked without the
    volatility factor (or with a non-positive value) use 20%.
    """
    def weights(self, candidates: Sequence[RankedSymbol]) -> List[float]:
        if not candidates:
            return []
        inverse = []
        for c in candidates:
            vol = float(c.metrics.get("volatility") or 0.0)
            if vol <= 0:
                vol = DEFAULT_VOLATILITY
            inverse.append(1.0 / vol)
        total = sum(inverse)
        return [iv / total for iv in inverse]

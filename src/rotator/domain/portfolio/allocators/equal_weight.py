from __future__ import annotations

from typing import List, Sequence

from rotator.application.plugins.registry import register_allocator
from rotator.domain.portfolio.allocators.base import BaseAllocator
from rotator.domain.portfolio.entities import RankedSymbol


@register_allocator(name="equal", tags={"default"})
class EqualWeightAllocator(BaseAllocator):
    """
    Simple allocator that gives the same weight to every candidate of a side.
    """
    def weights(self, candidates: Sequence[RankedSymbol]) -> List[float]:
        n = len(candidates)
        if n == 0:
            return []
        return [1.0 / n] * n

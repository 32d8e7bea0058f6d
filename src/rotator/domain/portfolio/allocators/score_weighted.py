from __future__ import annotations

from typing import List, Sequence

from rotator.application.plugins.registry import register_allocator
from rotator.domain.portfolio.allocators.base import BaseAllocator
from rotator.domain.portfolio.entities import RankedSymbol


@register_allocator(name="score_weighted", tags={"default"})
class ScoreWeightedAllocator(BaseAllocator):
    """
    Allocator that gives each candidate a weight proportional to its score.
    Scores are shifted by (1 - min score) first so that every weight is
    positive; the worst candidate always keeps a share.
    """
    def weights(self, candidates: Sequence[RankedSymbol]) -> List[float]:
        if not candidates:
            return []
        min_score = min(float(c.score) for c in candidates)
        adjusted = [float(c.score) - min_score + 1.0 for c in candidates]
        total = sum(adjusted)
        return [a / total for a in adjusted]

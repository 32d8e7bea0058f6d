from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from rotator.domain.portfolio.entities import RankedSymbol


class BaseAllocator(ABC):
    """Abstract base class for weighting-scheme plugins."""

    # Set by decorator
    name: str = ""
    tags: set[str] = set()

    @abstractmethod
    def weights(self, candidates: Sequence[RankedSymbol]) -> List[float]:
        """One weight per candidate, in order, summing to 1 (empty in, empty out)."""
        raise NotImplementedError

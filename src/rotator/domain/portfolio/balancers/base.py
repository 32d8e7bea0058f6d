from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from rotator.domain.portfolio.entities import (
    CurrentPosition,
    RebalanceResult,
    TargetPosition,
)


class BaseBalancer(ABC):
    """Abstract base class for rebalance order generator plugins."""

    # Set by decorator
    name: str = ""
    tags: set[str] = set()

    @abstractmethod
    def plan(
        self,
        targets: Sequence[TargetPosition],
        current_positions: Sequence[CurrentPosition],
        rebalance_fraction: float = 1.0,
        min_trade_size: float = 1.0,
    ) -> RebalanceResult:
        raise NotImplementedError

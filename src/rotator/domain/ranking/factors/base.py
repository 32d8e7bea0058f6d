from __future__ import annotations

from abc import ABC, abstractmethod
import pandas as pd


class BaseFactor(ABC):
    """Abstract base class for ranking factor plugins."""

    # Set by decorator
    name: str = ""
    inverse: bool = False
    tags: set[str] = set()

    @abstractmethod
    def compute(self, df: pd.DataFrame) -> float | None:
        """Factor value for one symbol's bars, or None when undefined."""
        raise NotImplementedError

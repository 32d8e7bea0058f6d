from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol


@dataclass(frozen=True, slots=True)
class FetchedSignal:
    value: float
    fetched_at: datetime
    raw: Any = field(default=None, compare=False)


class SignalPort(Protocol):
    def fetch_signal(self, kind: str, config: Mapping[str, Any]) -> FetchedSignal:
        """Fetch one indicator value. Raises on any failure."""
        ...

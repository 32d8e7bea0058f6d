from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Protocol, Sequence

from rotator.shared.types import OrderSide, OrderStatus


@dataclass(frozen=True, slots=True)
class LedgerOrder:
    """One placed order as stored in the ledger."""
    user_id: str
    strategy_id: str
    symbol: str
    side: OrderSide
    notional: float
    status: OrderStatus
    created_at: datetime
    qty: float | None = None
    order_id: str | None = None
    message: str = ""
    execution_id: str | None = None


@dataclass(frozen=True, slots=True)
class ExecutionRecord:
    """Summary row of one strategy run."""
    execution_id: str
    user_id: str
    strategy_id: str
    created_at: datetime
    summary: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)


class OrderLedgerPort(Protocol):
    """Append-only store of executions and their orders."""

    def append_execution(self, record: ExecutionRecord, orders: Sequence[LedgerOrder]) -> None: ...

    def successful_orders(self, user_id: str, strategy_id: str) -> List[LedgerOrder]:
        """Orders with status success for the pair, oldest first (append order on ties)."""
        ...

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Sequence

from rotator.ports.ledger import ExecutionRecord, LedgerOrder, OrderLedgerPort


@dataclass(slots=True)
class InMemoryOrderLedger(OrderLedgerPort):
    """Process-local ledger for tests and dry runs."""

    executions: list[ExecutionRecord] = field(default_factory=list)
    orders: list[LedgerOrder] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def append_execution(self, record: ExecutionRecord, orders: Sequence[LedgerOrder]) -> None:
        with self._lock:
            self.executions.append(record)
            self.orders.extend(orders)

    def successful_orders(self, user_id: str, strategy_id: str) -> List[LedgerOrder]:
        with self._lock:
            rows = [
                o for o in self.orders
                if o.user_id == user_id and o.strategy_id == strategy_id and o.status == "success"
            ]
        # sorted() is stable: append order breaks timestamp ties
        return sorted(rows, key=lambda o: o.created_at)

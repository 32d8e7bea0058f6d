from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from rotator.domain.market.symbols import canonical_symbol
from rotator.ports.ledger import ExecutionRecord, LedgerOrder, OrderLedgerPort

_log = logging.getLogger(__name__)


@dataclass(slots=True)
class StrategyOwnershipTracker:
    """
    Attributes account positions to the strategy that opened them.

    Ownership is never stored: it is recomputed from the ledger of
    successful orders. A (user, strategy) owns a symbol when its latest
    successful order on that symbol was a buy.
    """

    ledger: OrderLedgerPort

    def _last_sides(self, user_id: str, strategy_id: str) -> Dict[str, str]:
        last: Dict[str, str] = {}
        # oldest first, so later orders overwrite earlier ones
        for o in self.ledger.successful_orders(user_id, strategy_id):
            last[canonical_symbol(o.symbol)] = o.side
        return last

    def get_owned_symbols(self, user_id: str, strategy_id: str) -> Set[str]:
        return {sym for sym, side in self._last_sides(user_id, strategy_id).items() if side == "buy"}

    def record_execution(
        self,
        user_id: str,
        strategy_id: str,
        order_results: Sequence[Any],
        summary: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Append the run summary and its placed orders; returns the new
        execution id. Skipped orders never reached the broker and are left
        out; simulated ones are stored as successes.
        """
        now = datetime.now(timezone.utc)
        execution_id = uuid.uuid4().hex
        orders: List[LedgerOrder] = []
        for r in order_results:
            if r.status == "skipped":
                continue
            orders.append(
                LedgerOrder(
                    user_id=user_id,
                    strategy_id=strategy_id,
                    symbol=canonical_symbol(r.symbol),
                    side=r.side,
                    notional=float(r.notional),
                    status="success" if r.status == "simulated" else r.status,
                    created_at=now,
                    qty=r.qty,
                    order_id=r.order_id,
                    message=r.message or "",
                    execution_id=execution_id,
                )
            )
        record = ExecutionRecord(
            execution_id=execution_id,
            user_id=user_id,
            strategy_id=strategy_id,
            created_at=now,
            summary=dict(summary),
            metadata=dict(metadata or {}),
        )
        self.ledger.append_execution(record, orders)
        _log.info(
            "recorded execution %s for %s/%s with %d orders",
            execution_id, user_id, strategy_id, len(orders),
        )
        return execution_id

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, List, Sequence

from rotator.ports.ledger import ExecutionRecord, LedgerOrder, OrderLedgerPort


def _mongo_client(uri: str):
    try:
        from pymongo import MongoClient  # type: ignore
    except Exception as e:
        raise RuntimeError(
            "MongoDB ledger requires `pymongo` to be installed in the runtime environment"
        ) from e
    return MongoClient(uri)


_ORDER_FIELDS = (
    "user_id", "strategy_id", "symbol", "side", "notional", "status",
    "created_at", "qty", "order_id", "message", "execution_id",
)


@dataclass(slots=True)
class MongoOrderLedger(OrderLedgerPort):
    """executions / execution_orders collections in MongoDB."""

    uri: str
    db_name: str = "rotator"
    executions_collection: str = "executions"
    orders_collection: str = "execution_orders"

    _client: Any | None = field(default=None, init=False, repr=False)
    _db: Any | None = field(default=None, init=False, repr=False)

    def _ensure_db(self):
        if self._db is not None:
            return self._db
        client = _mongo_client(self.uri)
        db = client[self.db_name]
        db[self.orders_collection].create_index(
            [("user_id", 1), ("strategy_id", 1), ("status", 1), ("created_at", 1)],
            name="idx_owner",
        )
        db[self.executions_collection].create_index([("execution_id", 1)], unique=True, name="uq_execution")
        self._client = client
        self._db = db
        return db

    def append_execution(self, record: ExecutionRecord, orders: Sequence[LedgerOrder]) -> None:
        db = self._ensure_db()
        doc = asdict(record)
        doc["summary"] = dict(record.summary)
        doc["metadata"] = dict(record.metadata)
        db[self.executions_collection].insert_one(doc)
        if orders:
            db[self.orders_collection].insert_many([asdict(o) for o in orders], ordered=True)

    def successful_orders(self, user_id: str, strategy_id: str) -> List[LedgerOrder]:
        db = self._ensure_db()
        cur = db[self.orders_collection].find(
            {"user_id": user_id, "strategy_id": strategy_id, "status": "success"},
            {"_id": 0},
        ).sort([("created_at", 1), ("_id", 1)])
        return [LedgerOrder(**{k: d.get(k) for k in _ORDER_FIELDS}) for d in cur]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

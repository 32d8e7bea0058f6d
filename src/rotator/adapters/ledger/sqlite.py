from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Sequence

from rotator.ports.ledger import ExecutionRecord, LedgerOrder, OrderLedgerPort


_DDL = """
CREATE TABLE IF NOT EXISTS executions (
  execution_id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  strategy_id TEXT NOT NULL,
  created_at TEXT NOT NULL,
  summary_json TEXT NOT NULL,
  metadata_json TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS execution_orders (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  execution_id TEXT,
  user_id TEXT NOT NULL,
  strategy_id TEXT NOT NULL,
  symbol TEXT NOT NULL,
  side TEXT NOT NULL,
  notional REAL NOT NULL,
  qty REAL,
  status TEXT NOT NULL,
  broker_order_id TEXT,
  message TEXT,
  created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_eo_owner ON execution_orders(user_id, strategy_id, status, created_at);
"""


@dataclass(slots=True)
class SqliteOrderLedger(OrderLedgerPort):
    """Append-only executions/execution_orders tables in SQLite."""

    db_path: str

    _conn: sqlite3.Connection | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _ensure_conn(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.executescript(_DDL)
        conn.commit()
        self._conn = conn
        return conn

    def append_execution(self, record: ExecutionRecord, orders: Sequence[LedgerOrder]) -> None:
        with self._lock:
            conn = self._ensure_conn()
            with conn:
                conn.execute(
                    "INSERT INTO executions VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        record.execution_id,
                        record.user_id,
                        record.strategy_id,
                        record.created_at.isoformat(),
                        json.dumps(dict(record.summary), default=str),
                        json.dumps(dict(record.metadata), default=str),
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO execution_orders
                      (execution_id, user_id, strategy_id, symbol, side, notional, qty,
                       status, broker_order_id, message, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            o.execution_id or record.execution_id,
                            o.user_id,
                            o.strategy_id,
                            o.symbol,
                            o.side,
                            float(o.notional),
                            o.qty,
                            o.status,
                            o.order_id,
                            o.message,
                            o.created_at.isoformat(),
                        )
                        for o in orders
                    ],
                )

    def successful_orders(self, user_id: str, strategy_id: str) -> List[LedgerOrder]:
        with self._lock:
            conn = self._ensure_conn()
            cur = conn.execute(
                """
                SELECT user_id, strategy_id, symbol, side, notional, status, created_at,
                       qty, broker_order_id, message, execution_id
                FROM execution_orders
                WHERE user_id = ? AND strategy_id = ? AND status = 'success'
                ORDER BY created_at, id
                """,
                (user_id, strategy_id),
            )
            rows = cur.fetchall()
        return [
            LedgerOrder(
                user_id=r[0],
                strategy_id=r[1],
                symbol=r[2],
                side=r[3],
                notional=float(r[4]),
                status=r[5],
                created_at=datetime.fromisoformat(r[6]),
                qty=r[7],
                order_id=r[8],
                message=r[9] or "",
                execution_id=r[10],
            )
            for r in rows
        ]

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path

from rotator.adapters.telemetry.filtering import accepts
from rotator.ports.telemetry import TelemetryEvent, TelemetryLevel, TelemetrySink


_DDL = """
CREATE TABLE IF NOT EXISTS run_events (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts_utc TEXT NOT NULL,
  run_id TEXT NOT NULL,
  name TEXT NOT NULL,
  level TEXT NOT NULL,
  channel TEXT NOT NULL,
  user_id TEXT,
  strategy_id TEXT,
  scope_json TEXT NOT NULL,
  payload_json TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_re_run_ts ON run_events(run_id, ts_utc);
CREATE INDEX IF NOT EXISTS idx_re_strategy ON run_events(user_id, strategy_id);
"""


@dataclass(slots=True)
class DbExecutionJournalSink(TelemetrySink):
    """Append-only journal of run events persisted in SQLite.

    Rows are buffered and written in batches; call `close()` (the hub does)
    to flush the tail.
    """

    db_path: str
    enabled_flag: bool = True
    channels: set[str] = field(default_factory=lambda: {"audit", "ops"})
    min_level: TelemetryLevel = TelemetryLevel.INFO
    batch_size: int = 50

    _conn: sqlite3.Connection | None = field(default=None, init=False, repr=False)
    _buffer: list[tuple] = field(default_factory=list, init=False, repr=False)

    def _ensure_conn(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        p = Path(self.db_path)
        if str(p) != ":memory:":
            p.parent.mkdir(parents=True, exist_ok=True)
        # the hub serialises calls, worker threads share this connection
        conn = sqlite3.connect(str(p), check_same_thread=False)
        conn.executescript(_DDL)
        conn.commit()
        self._conn = conn
        return conn

    def enabled(self, channel: str, level: TelemetryLevel, name: str | None = None) -> bool:
        return accepts(self.enabled_flag, self.channels, self.min_level, channel, level)

    def emit(self, event: TelemetryEvent) -> None:
        scope = dict(event.scope or {})
        self._buffer.append(
            (
                event.ts_utc.isoformat(),
                str(event.run_id),
                str(event.name),
                str(event.level.value),
                str(event.channel),
                scope.get("user_id"),
                scope.get("strategy_id"),
                json.dumps(scope, separators=(",", ":"), default=str),
                json.dumps(dict(event.payload or {}), separators=(",", ":"), default=str),
            )
        )
        if len(self._buffer) >= max(1, int(self.batch_size)):
            self.flush()

    def flush(self) -> None:
        if not self._buffer:
            return
        conn = self._ensure_conn()
        rows = list(self._buffer)
        self._buffer.clear()
        conn.executemany(
            """
            INSERT INTO run_events
              (ts_utc, run_id, name, level, channel, user_id, strategy_id, scope_json, payload_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
        conn.commit()

    def fetch_run(self, run_id: str) -> list[tuple[str, str]]:
        """(name, payload_json) of one run, in emission order."""
        self.flush()
        conn = self._ensure_conn()
        cur = conn.execute(
            "SELECT name, payload_json FROM run_events WHERE run_id = ? ORDER BY id",
            (run_id,),
        )
        return [(r[0], r[1]) for r in cur.fetchall()]

    def close(self) -> None:
        try:
            self.flush()
        finally:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

from __future__ import annotations

import tempfile
import unittest
from unittest import mock

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from rotator.adapters.ledger.memory import InMemoryOrderLedger
from rotator.adapters.ledger.mongo import MongoOrderLedger
from rotator.adapters.ledger.sqlite import SqliteOrderLedger
from rotator.application.execution.result import OrderResult
from rotator.application.services.ownership import StrategyOwnershipTracker


class _LedgerContract:
    def make_ledger(self):
        raise NotImplementedError

    def setUp(self) -> None:
        self.ledger = self.make_ledger()
        self.tracker = StrategyOwnershipTracker(self.ledger)

    def test_record_then_own(self) -> None:
        exec_id = self.tracker.record_execution(
            "u1",
            "s1",
            [
                OrderResult("BTC/USD", "buy", 100.0, "success", order_id="o1"),
                OrderResult("AAPL", "buy", 100.0, "simulated"),
                OrderResult("MSFT", "buy", 100.0, "failed", message="rejected"),
                OrderResult("TSLA", "sell", 100.0, "skipped", message="too small"),
            ],
            {"orders_placed": 2},
            {"trigger": "manual"},
        )
        self.assertTrue(exec_id)
        self.assertEqual(self.tracker.get_owned_symbols("u1", "s1"), {"BTC/USD", "AAPL"})
        self.assertEqual(self.tracker.get_owned_symbols("u1", "s2"), set())
        self.assertEqual(self.tracker.get_owned_symbols("u2", "s1"), set())

    def test_later_sell_releases_symbol(self) -> None:
        self.tracker.record_execution("u1", "s1", [OrderResult("AAPL", "buy", 100.0, "success")], {})
        self.tracker.record_execution("u1", "s1", [OrderResult("AAPL", "sell", 100.0, "success")], {})
        self.assertEqual(self.tracker.get_owned_symbols("u1", "s1"), set())
        orders = self.ledger.successful_orders("u1", "s1")
        self.assertEqual([o.side for o in orders], ["buy", "sell"])


class TestInMemoryLedger(_LedgerContract, unittest.TestCase):
    def make_ledger(self):
        return InMemoryOrderLedger()

    def test_skipped_orders_are_not_stored(self) -> None:
        self.tracker.record_execution("u1", "s1", [OrderResult("TSLA", "sell", 1.0, "skipped")], {})
        self.assertEqual(self.ledger.orders, [])
        self.assertEqual(len(self.ledger.executions), 1)


class TestSqliteLedger(_LedgerContract, unittest.TestCase):
    def make_ledger(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        return SqliteOrderLedger(db_path=str(pathlib.Path(self.tmp.name) / "nested" / "ledger.sqlite"))

    def tearDown(self) -> None:
        self.ledger.close()

    def test_survives_reopen(self) -> None:
        self.tracker.record_execution("u1", "s1", [OrderResult("ETH/USD", "buy", 50.0, "success", qty=0.01)], {})
        path = self.ledger.db_path
        self.ledger.close()

        reopened = SqliteOrderLedger(db_path=path)
        try:
            (order,) = reopened.successful_orders("u1", "s1")
            self.assertEqual(order.symbol, "ETH/USD")
            self.assertEqual(order.qty, 0.01)
            self.assertIsNotNone(order.execution_id)
        finally:
            reopened.close()



class _Cursor(list):
    def sort(self, keys):
        return self


class _Collection:
    def __init__(self):
        self.docs = []

    def create_index(self, keys, **kwargs):
        return kwargs.get("name")

    def insert_one(self, doc):
        self.docs.append(dict(doc))

    def insert_many(self, docs, ordered=True):
        self.docs.extend(dict(d) for d in docs)

    def find(self, query, projection=None):
        return _Cursor(d for d in self.docs if all(d.get(k) == v for k, v in query.items()))


class _Client:
    def __init__(self):
        self.dbs = {}
        self.closed = False

    def __getitem__(self, name):
        return self.dbs.setdefault(name, _Database())

    def close(self):
        self.closed = True


class _Database(dict):
    def __missing__(self, name):
        self[name] = _Collection()
        return self[name]


class TestMongoLedger(_LedgerContract, unittest.TestCase):
    def make_ledger(self):
        self.client = _Client()
        patcher = mock.patch("rotator.adapters.ledger.mongo._mongo_client", return_value=self.client)
        patcher.start()
        self.addCleanup(patcher.stop)
        return MongoOrderLedger(uri="mongodb://localhost:27017", db_name="test")

    def test_close_releases_client(self) -> None:
        self.tracker.record_execution("u1", "s1", [], {})
        self.assertEqual(len(self.client["test"]["executions"].docs), 1)
        self.ledger.close()
        self.assertTrue(self.client.closed)


if __name__ == "__main__":
    unittest.main()

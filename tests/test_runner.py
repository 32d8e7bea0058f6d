from __future__ import annotations

import threading
import unittest

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from rotator.adapters.telemetry.memory import InMemoryTelemetrySink
from rotator.application.execution.result import ExecutionResult, RunStage
from rotator.application.runmodes.scheduled import group_by_user, run_all_users, run_forever, run_user
from rotator.application.strategy.config import StrategyConfig
from rotator.application.telemetry import TelemetryHub


class _RecordingExecutor:
    """Stands in for StrategyExecutor and notes the order of calls."""

    def __init__(self, log: list, lock: threading.Lock, fail: set[str] = frozenset(), explode: set[str] = frozenset()):
        self.log = log
        self.lock = lock
        self.fail = set(fail)
        self.explode = set(explode)

    def execute(self, strategy: StrategyConfig, dry_run: bool = False) -> ExecutionResult:
        with self.lock:
            self.log.append((strategy.user_id, strategy.id, dry_run))
        if strategy.id in self.explode:
            raise RuntimeError("boom")
        ok = strategy.id not in self.fail
        return ExecutionResult(
            success=ok,
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            orders_placed=2 if ok else 0,
            error=None if ok else "ranking failed",
            stage=RunStage.DONE if ok else RunStage.FAILED,
        )


def _s(user_id: str, sid: str, enabled: bool = True) -> StrategyConfig:
    return StrategyConfig(id=sid, user_id=user_id, name=sid.upper(), enabled=enabled)


class TestRunner(unittest.TestCase):
    def setUp(self) -> None:
        self.log: list = []
        self.lock = threading.Lock()

    def test_group_by_user_skips_disabled(self) -> None:
        groups = group_by_user([_s("a", "1"), _s("b", "2"), _s("a", "3"), _s("a", "4", enabled=False)])
        self.assertEqual({k: [s.id for s in v] for k, v in groups.items()}, {"a": ["1", "3"], "b": ["2"]})

    def test_user_strategies_run_in_order(self) -> None:
        ex = _RecordingExecutor(self.log, self.lock, fail={"2"})
        res = run_user("a", [_s("a", "1"), _s("a", "2"), _s("a", "3")], lambda uid: ex, dry_run=True)

        self.assertEqual([e[1] for e in self.log], ["1", "2", "3"])
        self.assertTrue(all(e[2] for e in self.log))
        self.assertEqual(res.total_orders_placed, 4)
        self.assertEqual(res.errors, ["Strategy 2: ranking failed"])

    def test_exception_is_captured_per_strategy(self) -> None:
        ex = _RecordingExecutor(self.log, self.lock, explode={"1"})
        res = run_user("a", [_s("a", "1"), _s("a", "2")], lambda uid: ex)
        self.assertEqual(len(res.strategies), 2)
        self.assertFalse(res.strategies[0].success)
        self.assertEqual(res.strategies[0].stage, RunStage.FAILED)
        self.assertTrue(res.strategies[1].success)

    def test_broker_setup_failure(self) -> None:
        def factory(uid):
            raise ValueError("Alpaca credentials are missing")

        res = run_user("a", [_s("a", "1")], factory)
        self.assertEqual(res.strategies, [])
        self.assertIn("Broker setup failed", res.errors[0])

    def test_no_strategies(self) -> None:
        res = run_user("a", [], lambda uid: None)
        self.assertEqual(res.errors, ["No active strategies found"])

    def test_run_all_users(self) -> None:
        sink = InMemoryTelemetrySink()
        summary = run_all_users(
            [_s("a", "1"), _s("b", "2"), _s("a", "3"), _s("c", "4")],
            lambda uid: _RecordingExecutor(self.log, self.lock, fail={"4"}),
            max_workers=3,
            telemetry=TelemetryHub(sinks=[sink]),
        )
        self.assertEqual([u.user_id for u in summary.users], ["a", "b", "c"])
        self.assertEqual(summary.total_strategies, 4)
        self.assertEqual(summary.total_orders_placed, 6)
        self.assertEqual(summary.total_errors, 1)
        a_runs = [e[1] for e in self.log if e[0] == "a"]
        self.assertEqual(a_runs, ["1", "3"])
        self.assertEqual(sink.by_name("runner.finished")[0].payload["errors"], 1)

    def test_run_forever_survives_failing_cycles(self) -> None:
        calls = []
        sleeps = []
        sink = InMemoryTelemetrySink()

        def step():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("network down")

        run_forever(step, 3600, telemetry=TelemetryHub(sinks=[sink]), sleep=sleeps.append, max_cycles=3)
        self.assertEqual(len(calls), 3)
        self.assertEqual(sleeps, [3600, 3600, 3600])
        self.assertEqual(len(sink.by_name("error.exception")), 1)


if __name__ == "__main__":
    unittest.main()

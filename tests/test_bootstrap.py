from __future__ import annotations

import tempfile
import unittest

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from rotator.adapters.ledger.memory import InMemoryOrderLedger
from rotator.adapters.ledger.sqlite import SqliteOrderLedger
from rotator.adapters.telemetry import ConsoleTelemetrySink, DbExecutionJournalSink
from rotator.application.strategy.config import build_strategy_configs
from rotator.bootstrap.main import build_ledger, build_parser, build_telemetry
from rotator.shared.config import AppConfig, load_config


class TestBootstrap(unittest.TestCase):
    def test_parser(self) -> None:
        args = build_parser().parse_args(["--config", "x.yaml", "test-run", "mag7-momentum"])
        self.assertEqual((args.config, args.command, args.strategy_id), ("x.yaml", "test-run", "mag7-momentum"))
        args = build_parser().parse_args(["run-all"])
        self.assertIsNone(args.dry_run)
        self.assertFalse(args.forever)

    def test_ledger_backends(self) -> None:
        self.assertIsInstance(build_ledger(AppConfig(ledger={"backend": "memory"})), InMemoryOrderLedger)
        with tempfile.TemporaryDirectory() as tmp:
            ledger = build_ledger(AppConfig(ledger={"backend": "sqlite", "path": f"{tmp}/l.sqlite"}))
            self.assertIsInstance(ledger, SqliteOrderLedger)
        with self.assertRaises(SystemExit):
            build_ledger(AppConfig(ledger={"backend": "mongo"}))

    def test_telemetry_sinks_follow_config(self) -> None:
        hub = build_telemetry(AppConfig(telemetry={"console_enabled": True, "journal_enabled": True,
                                                   "journal_path": ":memory:"}))
        kinds = {type(s) for s in hub.sinks}
        self.assertEqual(kinds, {ConsoleTelemetrySink, DbExecutionJournalSink})
        self.assertEqual(build_telemetry(AppConfig(telemetry={"console_enabled": False})).sinks, [])

    def test_example_config_loads(self) -> None:
        cfg = load_config(str(ROOT / "configs" / "example.yaml"))
        strategies = build_strategy_configs(cfg)
        self.assertTrue(strategies)
        self.assertTrue(all(cfg.user(s.user_id) is not None for s in strategies))


if __name__ == "__main__":
    unittest.main()

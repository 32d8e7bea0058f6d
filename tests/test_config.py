from __future__ import annotations

import os
import tempfile
import textwrap
import unittest
from unittest import mock

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from pydantic import ValidationError

from rotator.application.services.universe_resolver import resolve_universe
from rotator.application.strategy.config import (
    StrategyConfig,
    UniverseConfig,
    build_strategy_config,
    build_strategy_configs,
)
from rotator.domain.portfolio.entities import WeightScheme
from rotator.domain.ranking.ranker import RankingConfig
from rotator.domain.signals.entities import ConditionType, GateAction
from rotator.shared.config import StrategyCfg, load_config

_YAML = textwrap.dedent(
    """
    broker:
      api_key: ""
      paper: true
    ledger:
      backend: memory
    signal_sources:
      - id: fear_greed_crypto
        kind: builtin
        builtin: fear_greed_crypto
    synthetic_indices:
      - id: chips
        components: [nvda, amd, " avgo ", NVDA]
    users:
      - id: alice
    strategies:
      - id: crypto
        user_id: alice
        name: Crypto rotation
        allocation_pct: 40
        universe:
          type: predefined
          predefined_list: crypto_top10
        params:
          ranking_factors: {momentum_20d: 2, volatility: 1}
          long_n: 3
          rebalance_fraction: 0.25
          max_weight_per_symbol: 0.4
          weight_scheme: inverse_volatility
          cash_reserve_pct: 0.05
          signal_conditions:
            - source_id: fear_greed_crypto
              type: conditional_gate
              operator: lt
              threshold: 20
              action: skip_trading
            - source_id: fear_greed_crypto
              type: position_modifier
              operator: gt
              threshold: 75
              multiplier: 0.5
    """
)


class TestLoadConfig(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = pathlib.Path(self.tmp.name) / "config.yaml"
        self.path.write_text(_YAML, encoding="utf-8")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_env_fills_missing_credentials(self) -> None:
        env = {
            "ALPACA_API_KEY": "key-from-env",
            "ALPACA_SECRET_KEY": "secret-from-env",
            "ALPACA_BASE_URL": "",
        }
        with mock.patch.dict(os.environ, env):
            cfg = load_config(str(self.path))
        self.assertEqual(cfg.broker.api_key, "key-from-env")
        self.assertEqual(cfg.broker.secret_key, "secret-from-env")
        self.assertEqual(cfg.broker.base_url, "https://paper-api.alpaca.markets")
        self.assertEqual(cfg.ledger.backend, "memory")

    def test_strategy_is_converted(self) -> None:
        cfg = load_config(str(self.path))
        (s,) = build_strategy_configs(cfg)

        self.assertEqual((s.id, s.user_id, s.name, s.allocation_pct), ("crypto", "alice", "Crypto rotation", 40.0))
        self.assertEqual([(f.factor, f.weight) for f in s.ranking.factors], [("momentum_20d", 2.0), ("volatility", 1.0)])
        self.assertEqual(s.execution.weight_scheme, WeightScheme.INVERSE_VOLATILITY)
        gate, modifier = s.execution.signal_conditions
        self.assertEqual(gate.type, ConditionType.GATE)
        self.assertEqual(gate.action, GateAction.SKIP_TRADING)
        self.assertEqual(modifier.multiplier, 0.5)

    def test_synthetic_index_lookup(self) -> None:
        cfg = load_config(str(self.path))
        idx = cfg.synthetic_index("chips")
        universe = resolve_universe(UniverseConfig(type="synthetic", synthetic_index_id="chips"), idx.components)
        self.assertEqual(universe, ["NVDA", "AMD", "AVGO"])
        self.assertIsNone(cfg.synthetic_index("missing"))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config(str(pathlib.Path(self.tmp.name) / "nope.yaml"))


class TestStrategyBounds(unittest.TestCase):
    def test_single_metric_fallback(self) -> None:
        s = build_strategy_config(StrategyCfg(id="x", user_id="u", params={"ranking_metric": "rsi"}))
        self.assertEqual([f.factor for f in s.ranking.factors], ["rsi"])
        self.assertEqual(s.name, "x")

    def test_invalid_values_rejected(self) -> None:
        with self.assertRaises(ValueError):
            build_strategy_config(StrategyCfg(id="x", user_id="u", params={"rebalance_fraction": 2}))
        with self.assertRaises(ValueError):
            StrategyConfig(id="x", user_id="u", allocation_pct=120)
        with self.assertRaises(ValueError):
            StrategyConfig(id="x", user_id="u", ranking=RankingConfig(lookback_days=0))
        with self.assertRaises(ValidationError):
            StrategyCfg(id="x", user_id="u", params={"weight_scheme": "random"})


class TestUniverse(unittest.TestCase):
    def test_predefined(self) -> None:
        symbols = resolve_universe(UniverseConfig(type="predefined", predefined_list="mag7"))
        self.assertEqual(symbols[0], "AAPL")
        self.assertEqual(len(symbols), 7)

    def test_custom_is_cleaned(self) -> None:
        cfg = UniverseConfig(type="custom", custom_symbols=("aapl", "", "MSFT", "AAPL"))
        self.assertEqual(resolve_universe(cfg), ["AAPL", "MSFT"])

    def test_unknown_list_and_missing_index_are_empty(self) -> None:
        self.assertEqual(resolve_universe(UniverseConfig(type="predefined", predefined_list="ftse")), [])
        self.assertEqual(resolve_universe(UniverseConfig(type="synthetic", synthetic_index_id="x")), [])

    def test_unknown_type(self) -> None:
        with self.assertRaises(ValueError):
            UniverseConfig(type="galaxy")


if __name__ == "__main__":
    unittest.main()

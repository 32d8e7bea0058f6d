from __future__ import annotations

import unittest
from datetime import datetime, timezone

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tests"))

import requests

from fakes import FakeSignals
from rotator.adapters.signals.http_signal import HttpSignalFetcher
from rotator.adapters.signals.jsonpath import extract
from rotator.adapters.telemetry.memory import InMemoryTelemetrySink
from rotator.application.services.signal_readings import fetch_signal_readings
from rotator.application.telemetry import RunTelemetry, TelemetryHub
from rotator.domain.signals.conditions import evaluate, readings_by_source, trading_allowed
from rotator.domain.signals.entities import (
    ConditionType,
    GateAction,
    Operator,
    SignalCondition,
    SignalReading,
)
from rotator.domain.signals.fear_greed import classify
from rotator.shared.config import AppConfig, SignalSourceCfg


class _Response:
    def __init__(self, status_code: int = 200, payload=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")


class _Session:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, dict(headers or {}), timeout))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


class TestConditions(unittest.TestCase):
    def test_operators(self) -> None:
        self.assertTrue(evaluate(5, Operator.GT, 4))
        self.assertFalse(evaluate(4, "gt", 4))
        self.assertTrue(evaluate(4, "gte", 4))
        self.assertTrue(evaluate(3, "lt", 4))
        self.assertTrue(evaluate(4, "lte", 4))
        self.assertTrue(evaluate(4, "eq", 4))
        self.assertTrue(evaluate(5, "neq", 4))

    def test_allow_gate_never_blocks(self) -> None:
        now = datetime.now(timezone.utc)
        readings = readings_by_source([SignalReading("fg", 90, now)])
        allow = SignalCondition("fg", ConditionType.GATE, Operator.GT, 50, action=GateAction.ALLOW_TRADING)
        skip = SignalCondition("fg", ConditionType.GATE, Operator.GT, 80, action=GateAction.SKIP_TRADING)
        self.assertTrue(trading_allowed([allow], readings))
        self.assertFalse(trading_allowed([allow, skip], readings))

    def test_missing_reading_is_not_satisfied(self) -> None:
        skip = SignalCondition("fg", ConditionType.GATE, Operator.LT, 20, action=GateAction.SKIP_TRADING)
        self.assertTrue(trading_allowed([skip], {}))

    def test_fear_greed_classification(self) -> None:
        self.assertEqual(classify(5), "Extreme Fear")
        self.assertEqual(classify(20), "Extreme Fear")
        self.assertEqual(classify(35), "Fear")
        self.assertEqual(classify(60), "Neutral")
        self.assertEqual(classify(75), "Greed")
        self.assertEqual(classify(81), "Extreme Greed")


class TestJsonPath(unittest.TestCase):
    def test_paths(self) -> None:
        data = {"data": [{"value": "42"}, {"value": "7"}], "meta": {"n": 2}}
        self.assertEqual(extract(data, "$.data[0].value"), "42")
        self.assertEqual(extract(data, "$.data[*].value"), "42")
        self.assertEqual(extract(data, "$.meta.n"), 2)
        self.assertIs(extract(data, "$"), data)

    def test_bad_paths(self) -> None:
        with self.assertRaises(ValueError):
            extract({"a": 1}, "$.a.b")
        with self.assertRaises(ValueError):
            extract({"a": []}, "$.a[*]")
        with self.assertRaises(ValueError):
            extract({"a": None}, "$.a.b")


class TestHttpSignalFetcher(unittest.TestCase):
    def test_builtin_fear_greed(self) -> None:
        session = _Session([_Response(payload={"data": [{"value": "27", "value_classification": "Fear"}]})])
        fetcher = HttpSignalFetcher(session=session, timeout_seconds=3)
        sig = fetcher.fetch_signal("builtin", {"builtin": "fear_greed_crypto"})
        self.assertEqual(sig.value, 27.0)
        url, _, timeout = session.calls[0]
        self.assertEqual(url, "https://api.alternative.me/fng/")
        self.assertEqual(timeout, 3)

    def test_scraper_strips_formatting(self) -> None:
        html = "<div class='vix'>VIX <span>1,234.5</span></div>"
        session = _Session([_Response(text=html)])
        fetcher = HttpSignalFetcher(session=session)
        sig = fetcher.fetch_signal("scraper", {"url": "https://example.test", "regex": r"<span>([^<]+)</span>"})
        self.assertEqual(sig.value, 1234.5)
        self.assertIn("User-Agent", session.calls[0][1])

    def test_scraper_without_match(self) -> None:
        fetcher = HttpSignalFetcher(session=_Session([_Response(text="nothing here")]))
        with self.assertRaises(ValueError):
            fetcher.fetch_signal("scraper", {"url": "https://example.test", "regex": r"(\d+)%"})

    def test_transient_errors_are_retried(self) -> None:
        session = _Session([
            requests.exceptions.ConnectionError("reset"),
            _Response(payload={"v": 3}),
        ])
        fetcher = HttpSignalFetcher(session=session, max_retries=2, retry_delay_seconds=0)
        sig = fetcher.fetch_signal("api", {"url": "https://example.test", "json_path": "$.v"})
        self.assertEqual(sig.value, 3.0)
        self.assertEqual(len(session.calls), 2)

    def test_client_errors_are_not_retried(self) -> None:
        session = _Session([_Response(status_code=404)])
        fetcher = HttpSignalFetcher(session=session, max_retries=3, retry_delay_seconds=0)
        with self.assertRaises(requests.exceptions.HTTPError):
            fetcher.fetch_signal("api", {"url": "https://example.test"})
        self.assertEqual(len(session.calls), 1)

    def test_unknown_kind_and_builtin(self) -> None:
        fetcher = HttpSignalFetcher(session=_Session([]))
        with self.assertRaises(ValueError):
            fetcher.fetch_signal("carrier_pigeon", {})
        with self.assertRaises(ValueError):
            fetcher.fetch_signal("builtin", {"builtin": "moon_phase"})


class TestFetchSignalReadings(unittest.TestCase):
    def test_one_fetch_per_source_and_failures_dropped(self) -> None:
        cfg = AppConfig(signal_sources=[SignalSourceCfg(id="vix", kind="scraper", url="https://x", regex="(\\d+)")])
        conds = [
            SignalCondition("fear_greed_crypto", ConditionType.GATE, Operator.LT, 20, action=GateAction.SKIP_TRADING),
            SignalCondition("fear_greed_crypto", ConditionType.POSITION_MODIFIER, Operator.GT, 75, multiplier=0.5),
            SignalCondition("vix", ConditionType.POSITION_MODIFIER, Operator.GT, 30, multiplier=0.5),
        ]
        signals = FakeSignals({"fear_greed_crypto": 12.0}, failing=["vix"])
        sink = InMemoryTelemetrySink()
        t = RunTelemetry(port=TelemetryHub(sinks=[sink]), run_id="r1")

        readings = fetch_signal_readings(conds, signals, cfg, t)

        self.assertEqual([(r.source_id, r.value) for r in readings], [("fear_greed_crypto", 12.0)])
        # unconfigured source falls back to the builtin of the same name
        self.assertEqual(signals.calls, [("builtin", "fear_greed_crypto"), ("scraper", "vix")])
        audit = sink.by_name("signals.reading")[0]
        self.assertEqual(audit.payload["classification"], "Extreme Fear")
        self.assertEqual(len(sink.by_name("signals.fetch_failed")), 1)

    def test_without_signal_port(self) -> None:
        conds = [SignalCondition("fg", ConditionType.GATE, Operator.LT, 20, action=GateAction.SKIP_TRADING)]
        self.assertEqual(fetch_signal_readings(conds, None, AppConfig()), [])


if __name__ == "__main__":
    unittest.main()

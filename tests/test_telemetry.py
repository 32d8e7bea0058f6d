from __future__ import annotations

import io
import json
import tempfile
import unittest
from datetime import datetime, timezone

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from rotator.adapters.telemetry.console import ConsoleTelemetrySink
from rotator.adapters.telemetry.db_journal import DbExecutionJournalSink
from rotator.adapters.telemetry.memory import InMemoryTelemetrySink
from rotator.adapters.telemetry.otel_spans import OtelSpanSink
from rotator.application.telemetry import RunTelemetry, TelemetryHub, make_run_id
from rotator.ports.telemetry import TelemetryLevel


class _BrokenSink:
    def enabled(self, channel, level, name=None) -> bool:
        return True

    def emit(self, event) -> None:
        raise RuntimeError("sink down")


class TestTelemetryHub(unittest.TestCase):
    def test_enabled_any_sink_accepts(self) -> None:
        sink = InMemoryTelemetrySink(
            enabled_flag=True,
            channels={"debug"},
            min_level=TelemetryLevel.DEBUG,
        )
        hub = TelemetryHub(sinks=[sink])

        self.assertTrue(hub.enabled("debug", "DEBUG"))
        self.assertFalse(hub.enabled("audit", "INFO"))

    def test_level_filter_and_warning_alias(self) -> None:
        sink = InMemoryTelemetrySink(channels={"ops"}, min_level=TelemetryLevel.WARN)
        t = RunTelemetry(port=TelemetryHub(sinks=[sink]), run_id="r1")
        t.emit(name="quiet", level="INFO")
        t.emit(name="loud", level="WARNING")
        self.assertEqual(sink.names(), ["loud"])
        self.assertEqual(sink.events[0].level, TelemetryLevel.WARN)

    def test_broken_sink_does_not_stop_others(self) -> None:
        sink = InMemoryTelemetrySink()
        hub = TelemetryHub(sinks=[_BrokenSink(), sink])
        RunTelemetry(port=hub, run_id="r1").emit(name="still.here")
        self.assertEqual(sink.names(), ["still.here"])

    def test_child_scope_merges(self) -> None:
        sink = InMemoryTelemetrySink()
        hub = TelemetryHub(sinks=[sink], base_scope={"user_id": "u1"}).child({"strategy_id": "s1"})
        RunTelemetry(port=hub, run_id="r1", base_scope={"stage": "ranking"}).audit("x", {"n": 1})
        self.assertEqual(dict(sink.events[0].scope), {"user_id": "u1", "strategy_id": "s1", "stage": "ranking"})
        self.assertEqual(sink.events[0].channel, "audit")


class TestRunTelemetry(unittest.TestCase):
    def test_stage_success_and_failure(self) -> None:
        sink = InMemoryTelemetrySink()
        t = RunTelemetry(port=TelemetryHub(sinks=[sink]), run_id="r1")

        with t.stage("ranking", universe_size=3):
            pass
        with self.assertRaises(ValueError):
            with t.stage("targeting"):
                raise ValueError("no equity")

        self.assertEqual(
            sink.names(),
            ["ranking.started", "ranking.finished", "targeting.started", "targeting.failed"],
        )
        failed = sink.by_name("targeting.failed")[0]
        self.assertEqual(failed.level, TelemetryLevel.ERROR)
        self.assertEqual(failed.payload["error_type"], "ValueError")
        self.assertEqual(sink.by_name("ranking.started")[0].payload, {"universe_size": 3})

    def test_debug_only_when_someone_listens(self) -> None:
        sink = InMemoryTelemetrySink(channels={"ops"})
        t = RunTelemetry(port=TelemetryHub(sinks=[sink]), run_id="r1")
        t.debug("details", {"x": 1})
        self.assertEqual(sink.events, [])

    def test_without_port_is_silent(self) -> None:
        t = RunTelemetry(port=None, run_id="r1")
        with t.stage("placing"):
            t.emit(name="anything")
        self.assertFalse(t.enabled("ops", "INFO"))

    def test_run_id_format(self) -> None:
        run_id = make_run_id("u1", "s1")
        self.assertTrue(run_id.startswith("u1-s1-"))
        ts = datetime(2024, 3, 5, 14, 30, 0, tzinfo=timezone.utc)
        run_id = make_run_id("bob smith", "mag7/momentum", ts)
        self.assertTrue(run_id.startswith("bob_smith-mag7_momentum-20240305143000-"))
        self.assertEqual(len(run_id.rsplit("-", 1)[1]), 4)


class TestSinks(unittest.TestCase):
    def test_console_line(self) -> None:
        stream = io.StringIO()
        sink = ConsoleTelemetrySink(enabled_flag=True, channels={"ops"}, stream=stream)
        t = RunTelemetry(
            port=TelemetryHub(sinks=[sink]),
            run_id="r1",
            base_scope={"user_id": "u1", "strategy_id": "s1"},
        )
        t.emit(name="run.finished", payload={"orders_placed": 3, "success": True})
        t.audit("order.result", {"symbol": "AAPL"})

        lines = stream.getvalue().splitlines()
        self.assertEqual(lines, ["[INFO][ops][r1] run.finished user_id=u1 strategy_id=s1 orders_placed=3"])

    def test_journal_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            sink = DbExecutionJournalSink(db_path=str(pathlib.Path(tmp) / "journal.sqlite"), batch_size=100)
            hub = TelemetryHub(sinks=[sink])
            t = RunTelemetry(port=hub, run_id="r1", base_scope={"user_id": "u1"})
            t.emit(name="run.started")
            t.audit("order.result", {"symbol": "AAPL", "notional": 10.5})
            t.debug("ignored", {"x": 1})

            rows = sink.fetch_run("r1")
            hub.close()

        self.assertEqual([r[0] for r in rows], ["run.started", "order.result"])
        self.assertEqual(json.loads(rows[1][1]), {"symbol": "AAPL", "notional": 10.5})

    def test_otel_span_per_run(self) -> None:
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        sink = OtelSpanSink(tracer_provider=provider)
        t = RunTelemetry(port=TelemetryHub(sinks=[sink]), run_id="r1", base_scope={"strategy_id": "s1"})

        t.emit(name="run.started", payload={"dry_run": True})
        t.audit("order.result", {"symbol": "AAPL", "status": "failed"})
        t.emit(name="run.finished", level="ERROR", payload={"success": False, "error": "boom"})

        (span,) = exporter.get_finished_spans()
        self.assertEqual(span.name, "strategy.run")
        self.assertEqual(span.attributes["rotator.run_id"], "r1")
        self.assertEqual(span.attributes["rotator.strategy_id"], "s1")
        self.assertEqual([e.name for e in span.events], ["order.result"])
        self.assertEqual(span.status.status_code, StatusCode.ERROR)


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Callable, List, Optional, Sequence

from rotator.shared.config import load_config, AppConfig, UserCfg
from rotator.adapters.alpaca.client import AlpacaClient
from rotator.adapters.alpaca.account import AlpacaAccount
from rotator.adapters.alpaca.market_data import AlpacaMarketData
from rotator.adapters.alpaca.trading import AlpacaTrading
from rotator.adapters.signals.http_signal import HttpSignalFetcher
from rotator.adapters.ledger.memory import InMemoryOrderLedger
from rotator.adapters.ledger.mongo import MongoOrderLedger
from rotator.adapters.ledger.sqlite import SqliteOrderLedger
from rotator.adapters.telemetry import (
    ConsoleTelemetrySink,
    DbExecutionJournalSink,
    OtelSpanSink,
)
from rotator.adapters.telemetry.otel_spans import build_tracer_provider
from rotator.application.telemetry.hub import TelemetryHub

from rotator.application.plugins import registry as _registry
from rotator.application.execution.executor import StrategyExecutor
from rotator.application.execution.result import ExecutionResult
from rotator.application.runmodes.scheduled import RunSummary, run_all_users, run_forever
from rotator.application.services.ownership import StrategyOwnershipTracker
from rotator.application.strategy.config import StrategyConfig, build_strategy_configs
from rotator.ports.ledger import OrderLedgerPort

_log = logging.getLogger(__name__)

DEFAULT_CONFIG = "configs/example.yaml"


def build_telemetry(cfg: AppConfig) -> TelemetryHub:
    sinks = []
    tcfg = cfg.telemetry

    if tcfg.journal_enabled:
        sinks.append(
            DbExecutionJournalSink(
                db_path=tcfg.journal_path,
                channels=set(tcfg.journal_channels),
            )
        )

    if tcfg.console_enabled:
        sinks.append(
            ConsoleTelemetrySink(
                enabled_flag=True,
                channels=set(tcfg.console_channels),
                min_level=tcfg.console_min_level,
            )
        )

    if tcfg.otel_enabled:
        sinks.append(OtelSpanSink(tracer_provider=build_tracer_provider(console_export=tcfg.otel_console_export)))

    return TelemetryHub(sinks=sinks)


def build_ledger(cfg: AppConfig) -> OrderLedgerPort:
    backend = cfg.ledger.backend
    if backend == "memory":
        return InMemoryOrderLedger()
    if backend == "mongo":
        if not cfg.ledger.mongo_uri:
            raise SystemExit("ledger.backend=mongo requires ledger.mongo_uri")
        return MongoOrderLedger(uri=cfg.ledger.mongo_uri, db_name=cfg.ledger.mongo_db)
    return SqliteOrderLedger(db_path=cfg.ledger.path)


def build_client(cfg: AppConfig, user: Optional[UserCfg]) -> AlpacaClient:
    b = cfg.broker
    return AlpacaClient(
        key_id=(user.api_key if user and user.api_key else b.api_key) or "",
        secret_key=(user.secret_key if user and user.secret_key else b.secret_key) or "",
        base_url=(user.base_url if user and user.base_url else b.base_url),
        paper=(user.paper if user else b.paper),
        data_feed=b.data_feed,
        timeout_seconds=b.timeout_seconds,
        max_retries=b.max_retries,
        retry_delay_seconds=b.retry_delay_seconds,
    )


def executor_factory(
    cfg: AppConfig,
    ledger: OrderLedgerPort,
    telemetry: TelemetryHub,
) -> Callable[[str], StrategyExecutor]:
    tracker = StrategyOwnershipTracker(ledger=ledger)
    signals = HttpSignalFetcher(
        timeout_seconds=cfg.broker.timeout_seconds,
        max_retries=cfg.broker.max_retries,
    )

    def make(user_id: str) -> StrategyExecutor:
        client = build_client(cfg, cfg.user(user_id))
        return StrategyExecutor(
            app_cfg=cfg,
            account=AlpacaAccount(client),
            market_data=AlpacaMarketData(client),
            trading=AlpacaTrading(client),
            tracker=tracker,
            signals=signals,
            telemetry=telemetry,
        )

    return make


def _find_strategy(strategies: Sequence[StrategyConfig], strategy_id: str) -> StrategyConfig:
    for s in strategies:
        if s.id == strategy_id:
            return s
    raise SystemExit(f"Unknown strategy: {strategy_id!r}")


def _print_json(obj) -> None:
    print(json.dumps(obj, indent=2, default=str))


def _summary_dict(summary: RunSummary) -> dict:
    return {
        "total_strategies": summary.total_strategies,
        "total_orders_placed": summary.total_orders_placed,
        "total_errors": summary.total_errors,
        "users": [
            {
                "user_id": u.user_id,
                "timestamp": u.timestamp.isoformat(),
                "total_orders_placed": u.total_orders_placed,
                "errors": list(u.errors),
                "strategies": [r.to_dict() for r in u.strategies],
            }
            for u in summary.users
        ],
    }


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rotator", description="Multi-strategy portfolio rotation engine")
    p.add_argument("--config", default=DEFAULT_CONFIG, help="YAML config path")
    p.add_argument("--log-level", default="INFO")
    sub = p.add_subparsers(dest="command", required=True)

    ex = sub.add_parser("execute", help="run one strategy and place orders")
    ex.add_argument("strategy_id")

    tr = sub.add_parser("test-run", help="run one strategy without placing orders")
    tr.add_argument("strategy_id")

    ra = sub.add_parser("run-all", help="run every enabled strategy of every user")
    ra.add_argument("--dry-run", action="store_true", default=None)
    ra.add_argument("--forever", action="store_true", help="repeat on the configured interval")
    return p


def run_app(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    strategies = build_strategy_configs(cfg)
    telemetry = build_telemetry(cfg)
    ledger = build_ledger(cfg)

    _registry.auto_discover()
    factory = executor_factory(cfg, ledger, telemetry)

    try:
        if args.command in ("execute", "test-run"):
            strategy = _find_strategy(strategies, args.strategy_id)
            executor = factory(strategy.user_id)
            dry_run = args.command == "test-run"
            result: ExecutionResult = executor.execute(
                strategy,
                dry_run=dry_run,
                trigger="manual",
            )
            _print_json(result.to_dict())
            return 0 if result.success else 1

        dry_run = cfg.runner.dry_run if args.dry_run is None else bool(args.dry_run)

        def step() -> RunSummary:
            summary = run_all_users(
                strategies,
                factory,
                dry_run=dry_run,
                max_workers=cfg.runner.max_workers,
                telemetry=telemetry,
            )
            _print_json(_summary_dict(summary))
            return summary

        if args.forever or cfg.runner.schedule.run_forever:
            run_forever(step, cfg.runner.schedule.interval_seconds, telemetry=telemetry)
            return 0
        summary = step()
        return 0 if summary.total_errors == 0 else 1
    finally:
        telemetry.close()
        close = getattr(ledger, "close", None)
        if callable(close):
            close()


def main() -> None:
    sys.exit(run_app())


if __name__ == "__main__":
    main()

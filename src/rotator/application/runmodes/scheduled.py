from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Sequence

from rotator.application.execution.executor import StrategyExecutor
from rotator.application.execution.result import ExecutionResult, RunStage
from rotator.application.strategy.config import StrategyConfig
from rotator.application.telemetry import RunTelemetry
from rotator.ports.telemetry import TelemetryLevel, TelemetryPort

_log = logging.getLogger(__name__)

ExecutorFactory = Callable[[str], StrategyExecutor]


@dataclass(slots=True)
class UserRunResult:
    user_id: str
    timestamp: datetime
    strategies: List[ExecutionResult] = field(default_factory=list)
    total_orders_placed: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass(slots=True)
class RunSummary:
    users: List[UserRunResult]
    total_strategies: int
    total_orders_placed: int
    total_errors: int


def group_by_user(strategies: Sequence[StrategyConfig]) -> Dict[str, List[StrategyConfig]]:
    out: Dict[str, List[StrategyConfig]] = {}
    for s in strategies:
        if s.enabled:
            out.setdefault(s.user_id, []).append(s)
    return out


def run_user(
    user_id: str,
    strategies: Sequence[StrategyConfig],
    executor_factory: ExecutorFactory,
    dry_run: bool = False,
) -> UserRunResult:
    """Run one user's strategies one after the other.

    They share a single account, so each run sees the buying power left by
    the previous one.
    """
    res = UserRunResult(user_id=user_id, timestamp=datetime.now(timezone.utc))
    if not strategies:
        res.errors.append("No active strategies found")
        return res

    try:
        executor = executor_factory(user_id)
    except Exception as e:
        _log.exception("no executor for user %s", user_id)
        res.errors.append(f"Broker setup failed: {e}")
        return res

    for strategy in strategies:
        try:
            r = executor.execute(strategy, dry_run=dry_run)
        except Exception as e:
            _log.exception("strategy %s raised outside the executor", strategy.id)
            r = ExecutionResult(
                success=False,
                strategy_id=strategy.id,
                strategy_name=strategy.name,
                error=str(e),
                stage=RunStage.FAILED,
            )
        if not r.success:
            res.errors.append(f"Strategy {strategy.name}: {r.error}")
        res.strategies.append(r)
        res.total_orders_placed += r.orders_placed
    return res


def run_all_users(
    strategies: Sequence[StrategyConfig],
    executor_factory: ExecutorFactory,
    dry_run: bool = False,
    max_workers: int = 4,
    telemetry: TelemetryPort | None = None,
) -> RunSummary:
    """Every user in parallel, each user's strategies serialised."""
    by_user = group_by_user(strategies)
    t = RunTelemetry(port=telemetry, run_id=f"run-all-{int(time.time())}", base_scope={"component": "runner"})
    t.emit(name="runner.started", payload={"users": len(by_user), "dry_run": dry_run})

    users: List[UserRunResult] = []
    if by_user:
        with ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="rotator-user") as pool:
            futures = [
                pool.submit(run_user, uid, strats, executor_factory, dry_run)
                for uid, strats in by_user.items()
            ]
            users = [f.result() for f in futures]

    summary = RunSummary(
        users=users,
        total_strategies=sum(len(u.strategies) for u in users),
        total_orders_placed=sum(u.total_orders_placed for u in users),
        total_errors=sum(len(u.errors) for u in users),
    )
    t.emit(
        name="runner.finished",
        level=TelemetryLevel.WARN if summary.total_errors else TelemetryLevel.INFO,
        payload={
            "users": len(users),
            "strategies": summary.total_strategies,
            "orders_placed": summary.total_orders_placed,
            "errors": summary.total_errors,
        },
    )
    return summary


def run_forever(
    step: Callable[[], RunSummary],
    interval_seconds: int,
    telemetry: TelemetryPort | None = None,
    sleep: Callable[[float], None] = time.sleep,
    max_cycles: int | None = None,
) -> None:
    t = RunTelemetry(port=telemetry, run_id="scheduler", base_scope={"component": "runner"})
    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        cycles += 1
        try:
            step()
        except KeyboardInterrupt:
            t.emit(name="runner.stopped", payload={"reason": "KeyboardInterrupt"})
            break
        except Exception as e:
            t.emit(
                name="error.exception",
                level=TelemetryLevel.ERROR,
                payload={"exception_type": type(e).__name__, "message": str(e)},
            )
        sleep(max(1, int(interval_seconds)))

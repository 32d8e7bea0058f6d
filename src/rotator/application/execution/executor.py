from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Sequence, Set

from rotator.application.execution.order_placer import OrderPlacer
from rotator.application.execution.result import (
    ExecutionDetails,
    ExecutionResult,
    OrderResult,
    RunStage,
    estimate_fees,
)
from rotator.application.services.ownership import StrategyOwnershipTracker
from rotator.application.services.ranking_service import rank_universe
from rotator.application.services.signal_readings import fetch_signal_readings
from rotator.application.services.universe_resolver import resolve_universe
from rotator.application.strategy.config import StrategyConfig
from rotator.application.telemetry import RunTelemetry, make_run_id
from rotator.domain.market.entities import BrokerPosition
from rotator.domain.market.symbols import canonical_symbol
from rotator.domain.portfolio.balancers.fractional import calculate_rebalance_orders
from rotator.domain.portfolio.entities import CurrentPosition, RebalanceOrder
from rotator.domain.portfolio.target_calculator import calculate_target_positions
from rotator.domain.portfolio.validation import validate_orders
from rotator.ports.account import AccountPort
from rotator.ports.market_data import MarketDataPort
from rotator.ports.signals import SignalPort
from rotator.ports.telemetry import TelemetryLevel, TelemetryPort
from rotator.ports.trading import TradingPort
from rotator.shared.config import AppConfig

_log = logging.getLogger(__name__)


def to_current_position(p: BrokerPosition) -> CurrentPosition:
    """Canonical symbol, market value signed like the quantity."""
    qty = float(p.qty)
    mv = float(p.market_value)
    return CurrentPosition(
        symbol=canonical_symbol(p.symbol),
        qty=qty,
        market_value=-abs(mv) if qty < 0 else mv,
        current_price=float(p.current_price),
    )


def _scaled_away(order: RebalanceOrder, valid: bool, min_trade_size: float) -> bool:
    """A buy the buying-power check shrank below the tradable minimum."""
    if order.notional <= 0:
        return True
    return not valid and order.side == "buy" and order.notional < min_trade_size


def owned_positions(positions: Sequence[BrokerPosition], owned: Set[str]) -> List[CurrentPosition]:
    out = []
    for p in positions:
        cp = to_current_position(p)
        if cp.symbol in owned:
            out.append(cp)
    return out


@dataclass(slots=True)
class StrategyExecutor:
    """
    Runs one strategy end to end against one broker account.

    Stages, in order: fetching_context, ranking, targeting,
    generating_orders, validating, placing, recording. Any exception
    outside order placement ends the run in the failed stage with nothing
    sent to the broker after it. Per-order problems are captured on the
    order result and the batch carries on.
    """

    app_cfg: AppConfig
    account: AccountPort
    market_data: MarketDataPort
    trading: TradingPort
    tracker: StrategyOwnershipTracker
    signals: SignalPort | None = None
    telemetry: TelemetryPort | None = None

    def execute(
        self,
        strategy: StrategyConfig,
        dry_run: bool = False,
        record: bool = True,
        trigger: str = "automated",
    ) -> ExecutionResult:
        run_id = make_run_id(strategy.user_id, strategy.id)
        t = RunTelemetry(
            port=self.telemetry,
            run_id=run_id,
            base_scope={"user_id": strategy.user_id, "strategy_id": strategy.id},
        )
        result = ExecutionResult(
            success=False,
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            run_id=run_id,
        )
        t0 = time.perf_counter()
        t.emit(name="run.started", payload={"dry_run": dry_run, "trigger": trigger, "strategy_name": strategy.name})

        try:
            self._run(strategy, result, t, dry_run=dry_run, record=record, trigger=trigger)
            result.success = True
            result.stage = RunStage.DONE
        except Exception as e:
            _log.exception("strategy %s failed during %s", strategy.id, result.stage.value)
            result.error = str(e) or type(e).__name__
            result.stage = RunStage.FAILED

        t.emit(
            name="run.finished",
            level=TelemetryLevel.INFO if result.success else TelemetryLevel.ERROR,
            payload={
                "success": result.success,
                "error": result.error,
                "orders_placed": result.orders_placed,
                "orders_failed": result.orders_failed,
                "duration_ms": round((time.perf_counter() - t0) * 1000, 2),
            },
        )
        return result

    def _run(
        self,
        strategy: StrategyConfig,
        result: ExecutionResult,
        t: RunTelemetry,
        *,
        dry_run: bool,
        record: bool,
        trigger: str,
    ) -> None:
        details = result.details
        execution = strategy.execution

        result.stage = RunStage.FETCHING_CONTEXT
        with t.stage(result.stage.value):
            components = None
            if strategy.universe.type == "synthetic":
                idx = self.app_cfg.synthetic_index(strategy.universe.synthetic_index_id)
                components = list(idx.components) if idx else []
            universe = resolve_universe(strategy.universe, components)
            details.universe_size = len(universe)
            readings = fetch_signal_readings(execution.signal_conditions, self.signals, self.app_cfg, t)
            details.signal_readings = list(readings)

        result.stage = RunStage.RANKING
        with t.stage(result.stage.value, universe_size=len(universe)):
            ranked = rank_universe(universe, self.market_data, strategy.ranking, t)
            details.ranked_symbols = len(ranked)

        result.stage = RunStage.TARGETING
        with t.stage(result.stage.value, ranked_count=len(ranked)):
            account = self.account.account()
            all_positions = self.account.positions()
            allocated = float(account.equity) * float(strategy.allocation_pct) / 100.0
            details.allocated_equity = allocated

            owned = self.tracker.get_owned_symbols(strategy.user_id, strategy.id)
            current = owned_positions(all_positions, owned)
            details.current_positions = len(current)

            targets = calculate_target_positions(ranked, execution, allocated, current, readings)
            details.target_positions = len(targets.targets)
            if targets.gated:
                t.audit("targets.gated", {"signal_modifiers": targets.signal_modifiers})

        result.stage = RunStage.GENERATING_ORDERS
        with t.stage(result.stage.value, targets_count=len(targets.targets)):
            rebalance = calculate_rebalance_orders(
                targets.targets,
                current,
                execution.rebalance_fraction,
                execution.min_trade_size,
            )

        result.stage = RunStage.VALIDATING
        with t.stage(result.stage.value, orders_count=len(rebalance.orders)):
            validation = validate_orders(rebalance.orders, float(account.buying_power))
            details.validation_message = validation.message
            orders = validation.orders
            if not validation.valid:
                t.emit(
                    name="orders.scaled",
                    level=TelemetryLevel.WARN,
                    payload={"scale_factor": validation.scale_factor, "buying_power": float(account.buying_power)},
                )

        result.stage = RunStage.PLACING
        with t.stage(result.stage.value, orders_count=len(orders)):
            try:
                is_open = bool(self.account.clock().is_open)
            except Exception as e:
                _log.warning("market clock unavailable, assuming open: %s", e)
                is_open = True
            details.market_status = "open" if is_open else "closed"

            owned_by_symbol: Dict[str, CurrentPosition] = {p.symbol: p for p in current}
            account_qty: Dict[str, float] = {}
            for p in all_positions:
                sym = canonical_symbol(p.symbol)
                account_qty[sym] = account_qty.get(sym, 0.0) + float(p.qty)

            placer = OrderPlacer(trading=self.trading, market_data=self.market_data)
            order_results: List[OrderResult] = []
            for od in orders:
                if _scaled_away(od, validation.valid, execution.min_trade_size):
                    res = OrderResult(
                        od.symbol, od.side, od.notional, "skipped",
                        message="Scaled below minimum trade size",
                    )
                elif dry_run:
                    res = OrderResult(od.symbol, od.side, od.notional, "simulated")
                else:
                    res = placer.place(od, owned_by_symbol, account_qty)
                order_results.append(res)
                t.audit(
                    "order.result",
                    {
                        "symbol": od.symbol,
                        "side": od.side,
                        "notional": round(res.notional, 2),
                        "qty": res.qty,
                        "status": res.status,
                        "reason": od.reason,
                        "message": res.message,
                    },
                )

        details.order_results = order_results
        details.total_buy_value = sum(o.notional for o in orders if o.side == "buy")
        details.total_sell_value = sum(o.notional for o in orders if o.side == "sell")
        details.net_change = details.total_buy_value - details.total_sell_value
        details.estimated_fees = estimate_fees(orders)
        result.orders_placed = sum(1 for r in order_results if r.status in ("success", "simulated"))
        result.orders_failed = sum(1 for r in order_results if r.status == "failed")

        if dry_run or not record:
            return

        result.stage = RunStage.RECORDING
        with t.stage(result.stage.value):
            try:
                result.execution_id = self.tracker.record_execution(
                    strategy.user_id,
                    strategy.id,
                    order_results,
                    {
                        "orders_placed": result.orders_placed,
                        "orders_failed": result.orders_failed,
                        "total_buy_value": details.total_buy_value,
                        "total_sell_value": details.total_sell_value,
                        "estimated_fees": details.estimated_fees,
                        "market_status": details.market_status,
                    },
                    {
                        "run_id": result.run_id,
                        "trigger": trigger,
                        "universe_size": details.universe_size,
                        "ranked_symbols": details.ranked_symbols,
                        "target_positions": details.target_positions,
                        "validation_message": details.validation_message,
                        "signal_readings": [
                            {"source_id": r.source_id, "value": r.value} for r in details.signal_readings
                        ],
                    },
                )
            except Exception as e:
                # orders are already at the broker; the run still succeeded
                _log.exception("recording execution for %s failed", strategy.id)
                result.recording_error = str(e)
                t.emit(name="recording.failed", level=TelemetryLevel.ERROR, payload={"error": str(e)})

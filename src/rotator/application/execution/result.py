from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from rotator.domain.market.symbols import is_crypto
from rotator.domain.signals.entities import SignalReading
from rotator.shared.types import MarketStatus, OrderSide, OrderStatus

CRYPTO_FEE_RATE = 0.002


class RunStage(str, Enum):
    IDLE = "idle"
    FETCHING_CONTEXT = "fetching_context"
    RANKING = "ranking"
    TARGETING = "targeting"
    GENERATING_ORDERS = "generating_orders"
    VALIDATING = "validating"
    PLACING = "placing"
    RECORDING = "recording"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class OrderResult:
    symbol: str
    side: OrderSide
    notional: float
    status: OrderStatus
    message: Optional[str] = None
    order_id: Optional[str] = None
    qty: Optional[float] = None


@dataclass(slots=True)
class ExecutionDetails:
    universe_size: int = 0
    ranked_symbols: int = 0
    target_positions: int = 0
    current_positions: int = 0
    allocated_equity: float = 0.0
    total_buy_value: float = 0.0
    total_sell_value: float = 0.0
    net_change: float = 0.0
    estimated_fees: float = 0.0
    market_status: MarketStatus = "closed"
    validation_message: Optional[str] = None
    order_results: List[OrderResult] = field(default_factory=list)
    signal_readings: List[SignalReading] = field(default_factory=list)


@dataclass(slots=True)
class ExecutionResult:
    """Outcome of one strategy run, identical in shape for dry and live runs."""

    success: bool
    strategy_id: str
    strategy_name: str
    orders_placed: int = 0
    orders_failed: int = 0
    error: Optional[str] = None
    stage: RunStage = RunStage.IDLE
    execution_id: Optional[str] = None
    run_id: Optional[str] = None
    recording_error: Optional[str] = None
    details: ExecutionDetails = field(default_factory=ExecutionDetails)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["stage"] = self.stage.value
        out["details"]["signal_readings"] = [
            {"source_id": r.source_id, "value": r.value, "fetched_at": r.fetched_at.isoformat()}
            for r in self.details.signal_readings
        ]
        return out


def estimate_fees(orders) -> float:
    """Crypto pays 20 bps of notional, equities trade free."""
    return sum(float(o.notional) * CRYPTO_FEE_RATE for o in orders if is_crypto(o.symbol))

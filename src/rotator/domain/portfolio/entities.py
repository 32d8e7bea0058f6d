from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping

from rotator.shared.types import OrderSide, PositionSide


Symbol = str


class WeightScheme(str, Enum):
    EQUAL = "equal"
    SCORE_WEIGHTED = "score_weighted"
    INVERSE_VOLATILITY = "inverse_volatility"


@dataclass(frozen=True, slots=True)
class RankedSymbol:
    """
    A symbol selected by the ranking stage for one side of the book.
    metrics: raw factor values keyed by factor name (before inversion).
    """
    symbol: Symbol
    side: PositionSide
    score: float
    metrics: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CurrentPosition:
    """
    Ownership-filtered holding in canonical symbol form. qty and
    market_value carry the same sign (negative for shorts).
    """
    symbol: Symbol
    qty: float
    market_value: float
    current_price: float

    @property
    def is_short(self) -> bool:
        return self.qty < 0


@dataclass(frozen=True, slots=True)
class TargetPosition:
    """
    Desired holding for one symbol. target_weight is a magnitude in [0, 1]
    within its side; target_value is negative for shorts.
    """
    symbol: Symbol
    side: PositionSide
    target_weight: float
    target_value: float
    current_value: float
    current_shares: float
    score: float


@dataclass(frozen=True, slots=True)
class RebalanceOrder:
    """Incremental dollar order produced by the balancer."""
    symbol: Symbol
    side: OrderSide
    notional: float
    reason: str
    is_short_target: bool = False


@dataclass
class TargetCalculationResult:
    targets: List[TargetPosition]
    total_equity: float
    cash_reserve: float
    investable_amount: float
    position_modifier: float = 1.0
    signal_modifiers: Dict[str, float] = field(default_factory=dict)
    gated: bool = False


@dataclass
class RebalanceResult:
    orders: List[RebalanceOrder]
    total_buy_notional: float
    total_sell_notional: float
    symbols_to_close: List[Symbol] = field(default_factory=list)


@dataclass
class ValidationResult:
    valid: bool
    orders: List[RebalanceOrder]
    message: str
    scale_factor: float = 1.0

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from rotator.domain.portfolio.entities import WeightScheme
from rotator.domain.ranking.ranker import FactorWeight, RankingConfig
from rotator.domain.signals.entities import (
    ConditionType,
    GateAction,
    Operator,
    SignalCondition,
)
from rotator.shared.config import AppConfig, StrategyCfg


@dataclass(frozen=True, slots=True)
class UniverseConfig:
    type: str = "predefined"
    predefined_list: Optional[str] = None
    custom_symbols: Tuple[str, ...] = ()
    synthetic_index_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in ("predefined", "custom", "synthetic"):
            raise ValueError(f"unknown universe type: {self.type!r}")


@dataclass(frozen=True, slots=True)
class ExecutionConfig:
    """How targets and orders are derived from a ranking.

    Bounds are checked here, once, so the calculators can trust them.
    """

    rebalance_fraction: float = 1.0
    max_weight_per_symbol: float = 1.0
    weight_scheme: WeightScheme = WeightScheme.EQUAL
    cash_reserve_pct: float = 0.0
    min_trade_size: float = 1.0
    signal_conditions: Tuple[SignalCondition, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.rebalance_fraction <= 1.0:
            raise ValueError(f"rebalance_fraction must be in [0, 1], got {self.rebalance_fraction}")
        if not 0.0 < self.max_weight_per_symbol <= 1.0:
            raise ValueError(f"max_weight_per_symbol must be in (0, 1], got {self.max_weight_per_symbol}")
        if not 0.0 <= self.cash_reserve_pct <= 1.0:
            raise ValueError(f"cash_reserve_pct must be in [0, 1], got {self.cash_reserve_pct}")
        if self.min_trade_size < 0:
            raise ValueError(f"min_trade_size must be >= 0, got {self.min_trade_size}")
        for c in self.signal_conditions:
            if c.type is ConditionType.GATE and c.action is None:
                raise ValueError(f"gate on {c.source_id!r} needs an action")


@dataclass(frozen=True, slots=True)
class StrategyConfig:
    id: str
    user_id: str
    name: str = ""
    allocation_pct: float = 100.0
    enabled: bool = True
    universe: UniverseConfig = field(default_factory=UniverseConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)

    def __post_init__(self) -> None:
        if not 0.0 <= self.allocation_pct <= 100.0:
            raise ValueError(f"allocation_pct must be in [0, 100], got {self.allocation_pct}")
        if self.ranking.lookback_days < 1:
            raise ValueError("lookback_days must be >= 1")
        if self.ranking.long_n < 0 or self.ranking.short_n < 0:
            raise ValueError("long_n and short_n must be >= 0")


def build_strategy_config(cfg: StrategyCfg) -> StrategyConfig:
    """Convert one YAML/pydantic strategy into the internal record."""
    p = cfg.params
    if p.ranking_factors:
        factors = tuple(FactorWeight(k, float(w)) for k, w in p.ranking_factors.items())
    else:
        factors = (FactorWeight(p.ranking_metric, 1.0),)

    conditions = tuple(
        SignalCondition(
            source_id=c.source_id,
            type=ConditionType(c.type),
            operator=Operator(c.operator),
            threshold=float(c.threshold),
            multiplier=float(c.multiplier),
            action=GateAction(c.action) if c.action else None,
        )
        for c in p.signal_conditions
    )

    return StrategyConfig(
        id=str(cfg.id),
        user_id=str(cfg.user_id),
        name=cfg.name or str(cfg.id),
        allocation_pct=float(cfg.allocation_pct),
        enabled=bool(cfg.enabled),
        universe=UniverseConfig(
            type=cfg.universe.type,
            predefined_list=cfg.universe.predefined_list,
            custom_symbols=tuple(cfg.universe.custom_symbols),
            synthetic_index_id=cfg.universe.synthetic_index_id,
        ),
        ranking=RankingConfig(
            factors=factors,
            lookback_days=int(p.lookback_days),
            long_n=int(p.long_n),
            short_n=int(p.short_n),
        ),
        execution=ExecutionConfig(
            rebalance_fraction=float(p.rebalance_fraction),
            max_weight_per_symbol=float(p.max_weight_per_symbol),
            weight_scheme=WeightScheme(p.weight_scheme),
            cash_reserve_pct=float(p.cash_reserve_pct),
            min_trade_size=float(p.min_trade_size),
            signal_conditions=conditions,
        ),
    )


def build_strategy_configs(cfg: AppConfig) -> List[StrategyConfig]:
    return [build_strategy_config(s) for s in cfg.strategies]

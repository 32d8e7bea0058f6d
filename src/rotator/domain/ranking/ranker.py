from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

import pandas as pd

from rotator.application.plugins.registry import get_factor
from rotator.domain.market.symbols import is_crypto
from rotator.domain.portfolio.entities import RankedSymbol

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FactorWeight:
    factor: str
    weight: float = 1.0


@dataclass(frozen=True, slots=True)
class RankingConfig:
    factors: Tuple[FactorWeight, ...] = field(default_factory=lambda: (FactorWeight("momentum"),))
    lookback_days: int = 60
    long_n: int = 0
    short_n: int = 0


def factor_value(df: pd.DataFrame, factor: str) -> float | None:
    """Raw value of one factor, None when unknown, undefined or failing."""
    plugin = get_factor(factor)
    if plugin is None:
        _log.warning("unknown ranking factor: %s", factor)
        return None
    try:
        value = plugin.compute(df)
    except Exception:
        _log.exception("factor %s failed", factor)
        return None
    if value is None:
        return None
    value = float(value)
    if value != value:  # NaN
        return None
    return value


def score_symbol(df: pd.DataFrame, factors: Tuple[FactorWeight, ...]) -> Tuple[float, Dict[str, float]]:
    metrics: Dict[str, float] = {}
    total_score = 0.0
    total_weight = 0.0
    for fw in factors:
        value = factor_value(df, fw.factor)
        if value is None:
            continue
        metrics[fw.factor] = value
        plugin = get_factor(fw.factor)
        normalized = -value if plugin is not None and plugin.inverse else value
        total_score += normalized * float(fw.weight)
        total_weight += float(fw.weight)
    score = total_score / total_weight if total_weight > 0 else 0.0
    return score, metrics


def rank_symbols(
    bars_by_symbol: Mapping[str, pd.DataFrame],
    config: RankingConfig,
) -> List[RankedSymbol]:
    """
    Score every symbol, sort best-first and split into the long and short
    selections. Symbols without any usable factor score 0 and stay in the
    ranking. Only the selected symbols are returned, longs first.
    """
    scored: List[Tuple[str, float, Dict[str, float]]] = []
    for symbol, df in bars_by_symbol.items():
        if df is None:
            df = pd.DataFrame()
        score, metrics = score_symbol(df, config.factors)
        scored.append((symbol, score, metrics))

    # sorted() is stable, equal scores keep universe order
    scored = sorted(scored, key=lambda t: t[1], reverse=True)

    total = len(scored)
    long_n = max(0, int(config.long_n))
    short_n = max(0, int(config.short_n))
    if short_n > 0 and any(is_crypto(sym) for sym, _, _ in scored):
        _log.warning("crypto symbols in universe, shorting disabled")
        short_n = 0

    actual_long = min(long_n, total)
    actual_short = min(short_n, max(0, total - actual_long))

    out: List[RankedSymbol] = []
    for sym, score, metrics in scored[:actual_long]:
        out.append(RankedSymbol(symbol=sym, side="long", score=score, metrics=metrics))
    if actual_short > 0:
        for sym, score, metrics in scored[total - actual_short:]:
            out.append(RankedSymbol(symbol=sym, side="short", score=score, metrics=metrics))
    return out

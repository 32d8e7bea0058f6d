from __future__ import annotations

import logging
from typing import Dict, List, Sequence

import pandas as pd

from rotator.application.telemetry import RunTelemetry
from rotator.domain.portfolio.entities import RankedSymbol
from rotator.domain.ranking.ranker import RankingConfig, rank_symbols
from rotator.ports.market_data import MarketDataPort
from rotator.ports.telemetry import TelemetryLevel

_log = logging.getLogger(__name__)

DAILY = "1Day"


def fetch_bars(
    symbols: Sequence[str],
    market_data: MarketDataPort,
    lookback_days: int,
    telemetry: RunTelemetry | None = None,
) -> Dict[str, pd.DataFrame]:
    """Daily bars per symbol. A failing symbol gets an empty frame."""
    out: Dict[str, pd.DataFrame] = {}
    for sym in symbols:
        try:
            df = market_data.get_bars(sym, DAILY, int(lookback_days))
        except Exception as e:
            _log.warning("bars for %s unavailable: %s", sym, e)
            if telemetry is not None:
                telemetry.emit(
                    name="ranking.bars_unavailable",
                    level=TelemetryLevel.WARN,
                    scope={"symbol": sym},
                    payload={"error": str(e)},
                )
            df = pd.DataFrame()
        out[sym] = df if df is not None else pd.DataFrame()
    return out


def rank_universe(
    symbols: Sequence[str],
    market_data: MarketDataPort,
    config: RankingConfig,
    telemetry: RunTelemetry | None = None,
) -> List[RankedSymbol]:
    if not symbols:
        return []
    bars = fetch_bars(symbols, market_data, config.lookback_days, telemetry)
    ranked = rank_symbols(bars, config)
    if telemetry is not None:
        telemetry.debug(
            "ranking.selection",
            {"ranked": [{"symbol": r.symbol, "side": r.side, "score": r.score} for r in ranked]},
        )
    return ranked

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from rotator.application.strategy.config import UniverseConfig
from rotator.domain.universe.predefined import predefined_symbols


def _dedupe_upper(symbols: Iterable[str]) -> List[str]:
    cleaned = (str(s).strip().upper() for s in symbols if s is not None)
    return list(dict.fromkeys(s for s in cleaned if s))


def resolve_universe(
    universe_config: UniverseConfig,
    synthetic_components: Optional[Sequence[str]] = None,
) -> List[str]:
    """Which symbols a strategy looks at in this run.

    Only answers *which* symbols are considered. Filtering by data quality
    happens in ranking. Unknown predefined ids and synthetic universes
    without components resolve to an empty list, which makes the run a
    no-op.
    """
    kind = (universe_config.type or "").lower()
    if kind == "predefined":
        return _dedupe_upper(predefined_symbols(universe_config.predefined_list or ""))
    if kind == "custom":
        return _dedupe_upper(universe_config.custom_symbols)
    if kind == "synthetic":
        return _dedupe_upper(synthetic_components or [])
    return []

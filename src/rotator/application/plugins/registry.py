from __future__ import annotations

import logging
from typing import Dict

from rotator.domain.ranking.factors.base import BaseFactor
from rotator.domain.portfolio.allocators.base import BaseAllocator
from rotator.domain.portfolio.balancers.base import BaseBalancer

_log = logging.getLogger(__name__)

FACTORS: Dict[str, BaseFactor] = {}
ALLOCATORS: Dict[str, BaseAllocator] = {}
BALANCERS: Dict[str, BaseBalancer] = {}

_discovered = False


def register_factor(*, name: str, inverse: bool = False, tags: set[str] | None = None, **params):
    """
    Register a ranking factor under `name`. Factors flagged `inverse` are
    better when lower (e.g. volatility) and get negated before weighting.
    Extra keyword params are set on the instance, so one class can back
    several names (momentum_5d, momentum_20d, ...).
    """
    def deco(cls):
        inst = cls()
        inst.name = name
        inst.inverse = bool(inverse)
        inst.tags = set(tags or set())
        for k, v in params.items():
            setattr(inst, k, v)
        FACTORS[name] = inst
        return cls
    return deco


def register_allocator(*, name: str, tags: set[str]):
    """
    Register a weighting scheme (equal, score_weighted, ...).
    """
    def deco(cls):
        inst = cls()
        inst.name = name
        inst.tags = tags
        ALLOCATORS[name] = inst
        return cls
    return deco


def register_balancer(*, name: str, tags: set[str]):
    """
    Register a rebalance order generator.
    """
    def deco(cls):
        inst = cls()
        inst.name = name
        inst.tags = tags
        BALANCERS[name] = inst
        return cls
    return deco


def get_factor(name: str) -> BaseFactor | None:
    auto_discover()
    return FACTORS.get(name)


def get_allocator(name: str) -> BaseAllocator:
    auto_discover()
    alloc = ALLOCATORS.get(name)
    if alloc is None:
        available = ", ".join(sorted(ALLOCATORS.keys()))
        raise KeyError(f"Weight scheme not found: {name!r}. Available: {available}")
    return alloc


def get_balancer(name: str) -> BaseBalancer:
    auto_discover()
    bal = BALANCERS.get(name)
    if bal is None:
        available = ", ".join(sorted(BALANCERS.keys()))
        raise KeyError(f"Balancer not found: {name!r}. Available: {available}")
    return bal


def auto_discover(force: bool = False) -> None:
    """
    Import all plugin modules so that their decorators run and fill the
    registries above. Cheap after the first call.
    """
    global _discovered
    if _discovered and not force:
        return
    _discovered = True

    import importlib
    import pkgutil

    bases = (
        "rotator.domain.ranking.factors",
        "rotator.domain.portfolio.allocators",
        "rotator.domain.portfolio.balancers",
    )

    for base in bases:
        try:
            pkg = importlib.import_module(base)
        except Exception:
            _log.exception("[plugins] base import failed: %s", base)
            continue

        pkg_path = getattr(pkg, "__path__", None)
        if not pkg_path:
            continue

        for mod in pkgutil.walk_packages(pkg_path, pkg.__name__ + "."):
            try:
                importlib.import_module(mod.name)
            except Exception:
                _log.exception("[plugins] import failed: %s", mod.name)

    _log.debug(
        "[plugins] discovered factors=%d allocators=%d balancers=%d",
        len(FACTORS),
        len(ALLOCATORS),
        len(BALANCERS),
    )

from __future__ import annotations
from functools import wraps
import logging

_log = logging.getLogger(__name__)


def paper_only(fn):
    """Refuse to run `fn` unless the adapter is bound to a paper account."""
    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        require = getattr(self, "require_paper", True)
        if require and not self.is_paper():
            raise RuntimeError("Blocked: order placement is only allowed on paper accounts.")
        return fn(self, *args, **kwargs)
    return wrapper


def logged(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        name = fn.__qualname__
        try:
            res = fn(*args, **kwargs)
            _log.debug("%s: ok -> %s", name, res)
            return res
        except Exception:
            _log.exception("%s: error", name)
            raise
    return wrapper

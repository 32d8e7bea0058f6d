from __future__ import annotations

import re

CRYPTO_SEPARATOR = "/"

# Broker-side crypto spelling without separator, e.g. BTCUSD, DOGEUSD.
_COMPACT_CRYPTO_RE = re.compile(r"^[A-Z]{3,5}USD$")


def is_crypto(symbol: str) -> bool:
    """Crypto pairs are the only symbols carrying a separator (BTC/USD)."""
    return CRYPTO_SEPARATOR in (symbol or "")


def canonical_symbol(symbol: str) -> str:
    """Normalise a symbol to the universe spelling.

    Equities are upper-cased; compact crypto pairs (BTCUSD) gain their
    separator (BTC/USD). Every comparison across broker, ledger and universe
    goes through this function.
    """
    s = (symbol or "").strip().upper()
    if CRYPTO_SEPARATOR in s:
        return s
    if _COMPACT_CRYPTO_RE.match(s):
        return f"{s[:-3]}{CRYPTO_SEPARATOR}USD"
    return s


def time_in_force_for(symbol: str) -> str:
    # crypto trades 24/7 and rejects day orders
    return "gtc" if is_crypto(symbol) else "day"

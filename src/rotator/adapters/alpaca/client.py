"""
Alpaca REST wrapper shared by the account, market data and trading adapters.

One instance per user account. Every call goes through `call()`, which
retries transient failures (timeouts, dropped connections, HTTP 429/5xx)
a bounded number of times and re-raises everything else.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable

import alpaca_trade_api as tradeapi
import requests
from alpaca_trade_api.rest import APIError
from requests.adapters import HTTPAdapter

_log = logging.getLogger(__name__)

TRANSIENT_STATUS = {429, 500, 502, 503, 504}


class TimeoutHTTPAdapter(HTTPAdapter):
    """HTTPAdapter that applies a default timeout to every request."""

    def __init__(self, *args, timeout: float = 10.0, **kwargs):
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        return True
    if isinstance(exc, APIError):
        return getattr(exc, "status_code", None) in TRANSIENT_STATUS
    return False


class AlpacaClient:
    def __init__(
        self,
        key_id: str,
        secret_key: str,
        base_url: str,
        paper: bool = True,
        data_feed: str = "iex",
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
    ):
        if not key_id or not secret_key:
            raise ValueError("Alpaca credentials are missing (api_key / secret_key)")
        self.base_url = base_url
        self.paper = paper
        self.data_feed = data_feed
        self.max_retries = max(1, int(max_retries))
        self.retry_delay_seconds = float(retry_delay_seconds)

        self.api = tradeapi.REST(key_id=key_id, secret_key=secret_key, base_url=base_url, api_version="v2")
        session = getattr(self.api, "_session", None)
        if isinstance(session, requests.Session):
            adapter = TimeoutHTTPAdapter(timeout=float(timeout_seconds))
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        _log.info("Alpaca client initialised: %s (paper=%s)", base_url, paper)

    def is_paper(self) -> bool:
        return bool(self.paper) and "paper" in (self.base_url or "")

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        for attempt in range(1, self.max_retries + 1):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not is_transient(e) or attempt == self.max_retries:
                    raise
                _log.warning(
                    "transient Alpaca error (attempt %d/%d): %s",
                    attempt, self.max_retries, e,
                )
                time.sleep(self.retry_delay_seconds * attempt)
        raise RuntimeError("unreachable")

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Mapping

import requests

from rotator.adapters.signals.jsonpath import extract
from rotator.ports.signals import FetchedSignal, SignalPort

_log = logging.getLogger(__name__)

BROWSER_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")

BUILTIN_SOURCES: dict[str, dict[str, Any]] = {
    "fear_greed_crypto": {
        "kind": "api",
        "url": "https://api.alternative.me/fng/",
        "json_path": "$.data[0].value",
    },
}


class HttpSignalFetcher(SignalPort):
    """
    Reads external indicators over HTTP.

    Kinds: `api` (JSON body + json_path), `scraper` (HTML + regex with one
    capture group) and `builtin` (named presets such as fear_greed_crypto).
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        retry_delay_seconds: float = 1.0,
    ):
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, int(max_retries))
        self.retry_delay_seconds = retry_delay_seconds

    def fetch_signal(self, kind: str, config: Mapping[str, Any]) -> FetchedSignal:
        if kind == "builtin":
            name = config.get("builtin") or config.get("id")
            preset = BUILTIN_SOURCES.get(str(name))
            if preset is None:
                raise ValueError(f"Unknown builtin signal source: {name!r}")
            return self.fetch_signal(preset["kind"], preset)
        if kind == "api":
            return self._fetch_api(config)
        if kind == "scraper":
            return self._fetch_scraper(config)
        raise ValueError(f"Unknown signal kind: {kind!r}")

    def _get(self, url: str, headers: Mapping[str, str]) -> requests.Response:
        if not url:
            raise ValueError("signal source has no url")
        for attempt in range(1, self.max_retries + 1):
            try:
                resp = self.session.get(url, headers=dict(headers), timeout=self.timeout_seconds)
                if resp.status_code >= 500 and attempt < self.max_retries:
                    raise requests.exceptions.ConnectionError(f"HTTP {resp.status_code}")
                resp.raise_for_status()
                return resp
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                if attempt == self.max_retries:
                    raise
                _log.warning("signal fetch %s failed (attempt %d): %s", url, attempt, e)
                time.sleep(self.retry_delay_seconds)
        raise RuntimeError("unreachable")

    def _fetch_api(self, config: Mapping[str, Any]) -> FetchedSignal:
        resp = self._get(config.get("url") or "", config.get("headers") or {})
        data = resp.json()
        value = extract(data, config.get("json_path") or "$")
        return FetchedSignal(value=float(value), fetched_at=datetime.now(timezone.utc), raw=data)

    def _fetch_scraper(self, config: Mapping[str, Any]) -> FetchedSignal:
        headers = {"User-Agent": BROWSER_UA}
        headers.update(config.get("headers") or {})
        resp = self._get(config.get("url") or "", headers)
        html = resp.text
        pattern = config.get("regex") or ""
        match = re.search(pattern, html)
        if not match or not match.groups() or not match.group(1):
            raise ValueError(f"Could not extract value with regex: {pattern}")
        value = float(_NON_NUMERIC_RE.sub("", match.group(1)))
        return FetchedSignal(value=value, fetched_at=datetime.now(timezone.utc), raw={"html": html[:1000]})

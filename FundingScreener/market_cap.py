# FundingScreener/market_cap.py
"""
CoinGecko symbol index
----------------------
Maps an upper-cased base-asset symbol to its display name and market cap,
built from ``/coins/markets`` (ordered by market cap, so the first hit for a
ticker shared by several coins is the biggest one and wins).

Caching rules:

* a built index is kept per ``(pages, per_page)`` for ``coingecko_ttl`` seconds
* a failed rebuild serves the last good index for that key, even when expired
* with nothing cached, a failed build yields an empty index – this never raises
* concurrent misses on one key wait for a single in-flight build
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from typing import Callable, Dict, Optional, Tuple

import requests

from .config import Settings
from .errors import RateLimited, UpstreamError, UpstreamUnavailable
from .models import MarketCapEntry
from .retry import RetryPolicy
from .utils.parse import field, safe_float, safe_str

SOURCE = "coingecko"

Key = Tuple[int, int]
SymbolIndex = Dict[str, MarketCapEntry]


class SymbolIndexCache:

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or Settings()
        self.session = session or requests.Session()
        self.clock = clock
        self.retry = RetryPolicy(
            max_attempts=self.settings.coingecko_max_attempts,
            base_delay=self.settings.coingecko_backoff,
            sleep=sleep,
        )

        self._cache: Dict[Key, Dict] = {}
        self._inflight: Dict[Key, Future] = {}
        self._lock = threading.Lock()

        # Stats
        self.hits = 0
        self.misses = 0
        self.builds = 0
        self.stale_serves = 0

    def get_or_build(self, pages: Optional[int] = None, per_page: Optional[int] = None) -> SymbolIndex:
        key = (
            self.settings.coingecko_pages if pages is None else pages,
            self.settings.coingecko_per_page if per_page is None else per_page,
        )

        with self._lock:
            entry = self._cache.get(key)
            if entry and self.clock() < entry['expires_at']:
                self.hits += 1
                return entry['value']
            self.misses += 1

            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            return future.result()

        try:
            index = self._refresh(key)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(index)
            return index
        finally:
            with self._lock:
                self._inflight.pop(key, None)

    def invalidate(self):
        with self._lock:
            self._cache.clear()

    def stats(self) -> Dict:
        with self._lock:
            return {
                'size': len(self._cache),
                'hits': self.hits,
                'misses': self.misses,
                'builds': self.builds,
                'stale_serves': self.stale_serves,
                'ttl_seconds': self.settings.coingecko_ttl,
            }

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _refresh(self, key: Key) -> SymbolIndex:
        index, ok = self._build(*key)
        with self._lock:
            if ok:
                self.builds += 1
                self._cache[key] = {
                    'value': index,
                    'expires_at': self.clock() + self.settings.coingecko_ttl,
                }
                return index
            entry = self._cache.get(key)
            if entry:
                self.stale_serves += 1

        if entry:
            logging.warning(f"{SOURCE}: rebuild failed, serving stale index ({len(entry['value'])} symbols)")
            return entry['value']
        logging.warning(f"{SOURCE}: rebuild failed and nothing cached, market caps unknown")
        return {}

    def _build(self, pages: int, per_page: int) -> Tuple[SymbolIndex, bool]:
        """Returns the index and whether at least one page came back."""
        index: SymbolIndex = {}
        fetched = 0
        for page in range(1, pages + 1):
            try:
                data = self.retry.call(self._fetch_page, page, per_page)
            except UpstreamError as e:
                logging.warning(f"{SOURCE}: page {page}/{pages} failed – {e}; keeping {fetched} page(s)")
                break
            fetched += 1
            if not isinstance(data, list):
                continue

            for coin in data:
                sym = safe_str(field(coin, 'symbol')).upper()
                name = safe_str(field(coin, 'name'))
                mc = safe_float(field(coin, 'market_cap'))
                if not sym or not name or mc is None:
                    continue
                if sym not in index:
                    index[sym] = MarketCapEntry(sym, name, int(mc))

        if fetched:
            logging.info(f"{SOURCE}: indexed {len(index)} symbols from {fetched} page(s)")
        return index, fetched > 0

    def _fetch_page(self, page: int, per_page: int):
        url = f"{self.settings.coingecko_base_url.rstrip('/')}/coins/markets"
        params = {
            'vs_currency': 'usd',
            'order': 'market_cap_desc',
            'per_page': per_page,
            'page': page,
            'sparkline': 'false',
        }
        try:
            response = self.session.get(
                url,
                params=params,
                headers={'User-Agent': self.settings.user_agent},
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as e:
            raise UpstreamUnavailable(SOURCE, str(e)) from e

        if response.status_code == 429:
            raise RateLimited(SOURCE, f"HTTP 429 on page {page}")
        if response.status_code != 200:
            raise UpstreamUnavailable(SOURCE, f"HTTP {response.status_code} on page {page}")
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(SOURCE, f"bad JSON on page {page}: {e}") from e

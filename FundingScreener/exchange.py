# FundingScreener/exchange.py
"""
Per-exchange market-data adapters
---------------------------------
Each adapter turns one exchange's public REST payloads into the shapes the
screener works with, so nothing downstream knows which venue it is talking to:

* universe   – USDT-settled, perpetual, currently trading symbols → base asset
* funding    – funding rate, next funding time, mark price per symbol
* turnover   – 24h traded value in USDT per symbol
* open interest for a single symbol (best effort, ``None`` on failure)

Transport is a ccxt client built by :func:`make_exchange`; only its implicit
REST methods are used, so no ``load_markets()`` round trip is needed.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set, Tuple

import ccxt

from .config import Settings
from .errors import RateLimited, UpstreamError, UpstreamUnavailable
from .models import ExchangeId, FundingSnapshot, Instrument, TurnoverSnapshot
from .retry import RetryPolicy
from .utils.parse import field, safe_float, safe_str
from .utils.time import iso_from_ms

Universe = Tuple[Set[str], Dict[str, str]]
Snapshots = Tuple[Dict[str, FundingSnapshot], Dict[str, TurnoverSnapshot]]

QUOTE = "USDT"


def make_exchange(exchange_id: ExchangeId, settings: Settings):
    common = {
        'enableRateLimit': True,
        'timeout': int(settings.request_timeout * 1_000),
        'userAgent': settings.user_agent,
    }
    if exchange_id == ExchangeId.BINANCE:
        base = settings.binance_base_url.rstrip('/')
        return ccxt.binanceusdm({
            **common,
            'options': {'defaultType': 'future'},
            'urls': {'api': {'fapiPublic': f"{base}/fapi/v1"}},
        })
    base = settings.bybit_base_url.rstrip('/')
    return ccxt.bybit({
        **common,
        'urls': {'api': {'public': base}},
    })


def as_list(x) -> list:
    return x if isinstance(x, list) else []


def build_universe(instruments: Iterable[Instrument]) -> Universe:
    allowed: Set[str] = set()
    symbol_to_base: Dict[str, str] = {}
    for inst in instruments:
        allowed.add(inst.symbol)
        symbol_to_base.setdefault(inst.symbol, inst.base_asset)
    return allowed, symbol_to_base


class ExchangeAdapter(ABC):
    exchange_id: ExchangeId
    # set when the ccxt client's own rate limiter should pace enrichment one call at a time
    sequential_enrichment = False

    def __init__(self, settings: Optional[Settings] = None, client=None, sleep=time.sleep):
        self.settings = settings or Settings()
        self.client = client if client is not None else make_exchange(self.exchange_id, self.settings)
        self.oi_retry = RetryPolicy(
            max_attempts=self.settings.open_interest_max_attempts,
            base_delay=self.settings.open_interest_backoff,
            sleep=sleep,
        )

    @property
    def name(self) -> str:
        return self.exchange_id.value

    @property
    def enrichment_concurrency(self) -> int:
        return 1 if self.sequential_enrichment else max(1, self.settings.enrichment_concurrency)

    @property
    def degrade_on_error(self) -> bool:
        return self.name in self.settings.degrade_exchanges

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @abstractmethod
    def fetch_universe(self) -> Universe:
        ...

    @abstractmethod
    def fetch_funding_snapshots(self) -> Dict[str, FundingSnapshot]:
        ...

    @abstractmethod
    def fetch_turnover_snapshots(self) -> Dict[str, TurnoverSnapshot]:
        ...

    def fetch_market_snapshots(self) -> Snapshots:
        return self.fetch_funding_snapshots(), self.fetch_turnover_snapshots()

    def discovery_order(self, symbol_to_base: Dict[str, str], funding: Dict[str, FundingSnapshot]) -> Iterable[str]:
        """Order in which candidates are visited; equal funding rates keep it."""
        return symbol_to_base.keys()

    def fetch_open_interest(self, symbol: str) -> Optional[float]:
        try:
            return self.oi_retry.call(self._open_interest, symbol)
        except UpstreamError as e:
            logging.warning(f"{symbol}: open interest unavailable on {self.name} – {e}")
            return None

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    @abstractmethod
    def _open_interest(self, symbol: str) -> Optional[float]:
        ...

    def _call(self, method: str, params: Optional[dict] = None):
        """Invoke a ccxt implicit endpoint, mapping ccxt errors onto our taxonomy."""
        try:
            return getattr(self.client, method)(params or {})
        # RateLimitExceeded and DDoSProtection are siblings under NetworkError in ccxt 4.x
        except (ccxt.RateLimitExceeded, ccxt.DDoSProtection) as e:
            raise RateLimited(self.name, f"{method} – {e}") from e
        except ccxt.BaseError as e:
            raise UpstreamUnavailable(self.name, f"{method} – {e}") from e


class BinanceAdapter(ExchangeAdapter):
    """USDT-M futures (fapi). ccxt's limiter already spaces calls, so OI is fetched sequentially."""

    exchange_id = ExchangeId.BINANCE
    sequential_enrichment = True

    def fetch_universe(self) -> Universe:
        data = self._call('fapiPublicGetExchangeInfo')
        instruments = (self._instrument(s) for s in as_list(field(data, 'symbols')))
        allowed, symbol_to_base = build_universe(i for i in instruments if i and self._tradable(i))
        logging.info(f"binance: {len(allowed)} USDT perpetuals trading")
        return allowed, symbol_to_base

    def fetch_funding_snapshots(self) -> Dict[str, FundingSnapshot]:
        out: Dict[str, FundingSnapshot] = {}
        for it in as_list(self._call('fapiPublicGetPremiumIndex')):
            sym = safe_str(field(it, 'symbol'))
            if not sym:
                continue
            out.setdefault(sym, FundingSnapshot(
                symbol=sym,
                funding_rate=safe_float(field(it, 'lastFundingRate')),
                next_funding_time_utc=iso_from_ms(field(it, 'nextFundingTime')),
                mark_price=safe_float(field(it, 'markPrice')),
            ))
        return out

    def fetch_turnover_snapshots(self) -> Dict[str, TurnoverSnapshot]:
        # quoteVolume on USDT-margined pairs is already in USDT
        out: Dict[str, TurnoverSnapshot] = {}
        for it in as_list(self._call('fapiPublicGetTicker24hr')):
            sym = safe_str(field(it, 'symbol'))
            if sym:
                out.setdefault(sym, TurnoverSnapshot(sym, safe_float(field(it, 'quoteVolume'))))
        return out

    def _open_interest(self, symbol: str) -> Optional[float]:
        data = self._call('fapiPublicGetOpenInterest', {'symbol': symbol})
        return safe_float(field(data, 'openInterest'))

    @staticmethod
    def _instrument(item) -> Optional[Instrument]:
        sym = safe_str(field(item, 'symbol'))
        base = safe_str(field(item, 'baseAsset'))
        if not sym or not base:
            return None
        return Instrument(
            symbol=sym,
            base_asset=base,
            quote_asset=safe_str(field(item, 'quoteAsset')).upper(),
            contract_type=safe_str(field(item, 'contractType')).upper(),
            status=safe_str(field(item, 'status')).upper(),
        )

    @staticmethod
    def _tradable(inst: Instrument) -> bool:
        return (inst.quote_asset == QUOTE
                and inst.contract_type == "PERPETUAL"
                and inst.status == "TRADING")


class BybitAdapter(ExchangeAdapter):
    """
    v5 linear market. Instrument and ticker listings are cursor-paginated;
    funding and turnover both live on the ticker listing, so it is read once.
    """

    exchange_id = ExchangeId.BYBIT
    PAGE_LIMIT = 1000

    def fetch_universe(self) -> Universe:
        raw = self._paginate('publicGetV5MarketInstrumentsInfo', {'category': 'linear', 'limit': self.PAGE_LIMIT})
        instruments = (self._instrument(it) for it in raw)
        allowed, symbol_to_base = build_universe(i for i in instruments if i and self._tradable(i))
        logging.info(f"bybit: {len(allowed)} USDT perpetuals trading ({len(raw)} linear listed)")
        return allowed, symbol_to_base

    def fetch_market_snapshots(self) -> Snapshots:
        funding: Dict[str, FundingSnapshot] = {}
        turnover: Dict[str, TurnoverSnapshot] = {}
        for t in self._paginate('publicGetV5MarketTickers', {'category': 'linear', 'limit': self.PAGE_LIMIT}):
            sym = safe_str(field(t, 'symbol'))
            if not sym or sym in funding:
                continue
            funding[sym] = FundingSnapshot(
                symbol=sym,
                funding_rate=safe_float(field(t, 'fundingRate')),
                next_funding_time_utc=iso_from_ms(field(t, 'nextFundingTime')),
                mark_price=safe_float(field(t, 'markPrice')),
            )
            turnover[sym] = TurnoverSnapshot(sym, safe_float(field(t, 'turnover24h')))
        return funding, turnover

    def discovery_order(self, symbol_to_base: Dict[str, str], funding: Dict[str, FundingSnapshot]) -> Iterable[str]:
        # ticker listing order
        return funding.keys()

    def fetch_funding_snapshots(self) -> Dict[str, FundingSnapshot]:
        return self.fetch_market_snapshots()[0]

    def fetch_turnover_snapshots(self) -> Dict[str, TurnoverSnapshot]:
        return self.fetch_market_snapshots()[1]

    def _open_interest(self, symbol: str) -> Optional[float]:
        # the endpoint insists on an interval; the latest 1h bucket is the current figure
        data = self._call('publicGetV5MarketOpenInterest', {
            'category': 'linear',
            'symbol': symbol,
            'intervalTime': '1h',
            'limit': 1,
        })
        items = as_list(field(field(data, 'result'), 'list'))
        return safe_float(field(items[0], 'openInterest')) if items else None

    def _paginate(self, method: str, params: dict) -> List:
        out: List = []
        seen = set()
        cursor = None
        while True:
            page = dict(params)
            if cursor:
                page['cursor'] = cursor
            result = field(self._call(method, page), 'result')
            out.extend(as_list(field(result, 'list')))

            cursor = safe_str(field(result, 'nextPageCursor'))
            if not cursor:
                break
            if cursor in seen:
                logging.warning(f"bybit: {method} repeated cursor {cursor!r}, stopping pagination")
                break
            seen.add(cursor)
        return out

    @staticmethod
    def _instrument(item) -> Optional[Instrument]:
        sym = safe_str(field(item, 'symbol'))
        base = safe_str(field(item, 'baseCoin'))
        if not sym or not base:
            return None
        return Instrument(
            symbol=sym,
            base_asset=base,
            quote_asset=safe_str(field(item, 'quoteCoin')).upper(),
            contract_type=safe_str(field(item, 'contractType')),
            status=safe_str(field(item, 'status')).lower(),
        )

    @staticmethod
    def _tradable(inst: Instrument) -> bool:
        is_usdt = inst.quote_asset == QUOTE or inst.symbol.endswith(QUOTE)
        is_perp = inst.contract_type == "LinearPerpetual" or "perpetual" in inst.contract_type.lower()
        is_trading = inst.status in ("", "trading")
        return is_usdt and is_perp and is_trading


ADAPTERS = {
    ExchangeId.BINANCE: BinanceAdapter,
    ExchangeId.BYBIT: BybitAdapter,
}


def make_adapter(exchange_id: ExchangeId, settings: Optional[Settings] = None) -> ExchangeAdapter:
    return ADAPTERS[ExchangeId(exchange_id)](settings)

"""
FundingScreener – perpetual-futures funding-rate screener for Binance USDT-M and Bybit linear,
cross-referenced with CoinGecko market caps and 24h turnover.
"""

from .config import Settings
from .errors import RateLimited, UpstreamError, UpstreamUnavailable
from .exchange import BinanceAdapter, BybitAdapter, ExchangeAdapter, make_adapter
from .market_cap import SymbolIndexCache
from .models import (
    Direction,
    ExchangeId,
    FundingSnapshot,
    MarketCapEntry,
    ScreenerFilters,
    ScreenerResponse,
    ScreenerRow,
    TurnoverSnapshot,
)
from .screener import ScreenerEngine
from .worker import EnrichmentPool

__all__ = [
    'Settings',
    'RateLimited',
    'UpstreamError',
    'UpstreamUnavailable',
    'BinanceAdapter',
    'BybitAdapter',
    'ExchangeAdapter',
    'make_adapter',
    'SymbolIndexCache',
    'Direction',
    'ExchangeId',
    'FundingSnapshot',
    'MarketCapEntry',
    'ScreenerFilters',
    'ScreenerResponse',
    'ScreenerRow',
    'TurnoverSnapshot',
    'ScreenerEngine',
    'EnrichmentPool',
]

# FundingScreener/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class ExchangeId(str, Enum):
    BINANCE = "binance"
    BYBIT = "bybit"


class Direction(str, Enum):
    NEGATIVE = "negative"
    POSITIVE = "positive"


@dataclass(frozen=True)
class Instrument:
    symbol: str
    base_asset: str
    quote_asset: str
    contract_type: str
    status: str


@dataclass(frozen=True)
class FundingSnapshot:
    symbol: str
    funding_rate: Optional[float]
    next_funding_time_utc: str
    mark_price: Optional[float]


@dataclass(frozen=True)
class TurnoverSnapshot:
    symbol: str
    quote_volume_24h: Optional[float]


@dataclass(frozen=True)
class MarketCapEntry:
    symbol_upper: str
    display_name: str
    market_cap_usd: int


@dataclass(frozen=True)
class ScreenerFilters:
    """
    One screener request. The alert thresholds are echoed back untouched;
    nothing in the pipeline evaluates them yet.
    """

    exchange: ExchangeId
    direction: Direction
    funding_cut: float
    min_market_cap_usd: float
    min_turnover_24h_usd: float
    limit: int
    alert_funding_cut: float
    alert_turnover_24h_usd: float

    def __post_init__(self):
        # accept plain strings from callers
        object.__setattr__(self, "exchange", ExchangeId(self.exchange))
        object.__setattr__(self, "direction", Direction(self.direction))

    def to_dict(self) -> Dict:
        return {
            "exchange": self.exchange.value,
            "direction": self.direction.value,
            "fundingCut": self.funding_cut,
            "minMarketCapUsd": self.min_market_cap_usd,
            "minTurnover24hUsd": self.min_turnover_24h_usd,
            "limit": self.limit,
            "alertFundingCut": self.alert_funding_cut,
            "alertTurnover24hUsd": self.alert_turnover_24h_usd,
        }


@dataclass(frozen=True)
class ScreenerRow:
    symbol: str
    display_name: str
    ticker: str
    funding_rate: float
    market_cap_usd: Optional[int]
    turnover_24h_usd: Optional[float]
    next_funding_time_utc: str
    mark_price: Optional[float]
    open_interest: Optional[float] = None
    open_interest_value_usd: Optional[float] = None
    alert: str = ""

    def to_dict(self) -> Dict:
        return {
            "symbol": self.symbol,
            "displayName": self.display_name,
            "ticker": self.ticker,
            "fundingRate": self.funding_rate,
            "marketCapUsd": self.market_cap_usd,
            "turnover24hUsd": self.turnover_24h_usd,
            "nextFundingTimeUtc": self.next_funding_time_utc,
            "markPrice": self.mark_price,
            "openInterest": self.open_interest,
            "openInterestValueUsd": self.open_interest_value_usd,
            "alert": self.alert,
        }


@dataclass(frozen=True)
class ScreenerResponse:
    updated_at_utc: str
    filters: ScreenerFilters
    rows: Tuple[ScreenerRow, ...]

    @property
    def count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict:
        return {
            "updatedAtUtc": self.updated_at_utc,
            "filters": self.filters.to_dict(),
            "count": self.count,
            "rows": [r.to_dict() for r in self.rows],
        }

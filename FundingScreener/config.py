# FundingScreener/config.py
import logging
import socket
from dataclasses import dataclass
from typing import Optional, Tuple

# Upstream sources
BINANCE_FAPI   = "https://fapi.binance.com"
BYBIT_REST     = "https://api.bybit.com"
COINGECKO_REST = "https://api.coingecko.com/api/v3"
HTTP_TIMEOUT   = 15            # seconds, per upstream call
USER_AGENT     = "funding-screener/1.0"

# CoinGecko market-cap index (pages=1 keeps us clear of the free-tier 429s)
CG_PAGES        = 1
CG_PER_PAGE     = 250
CG_TTL          = 30 * 60      # seconds
CG_MAX_ATTEMPTS = 3
CG_BACKOFF      = 1.0          # seconds × attempt

# Open-interest enrichment
OI_MAX_ATTEMPTS = 3
OI_BACKOFF      = 0.5          # seconds × attempt
OI_CONCURRENCY  = 4

ALLOW_UNKNOWN_MARKET_CAP = False
DEGRADE_EXCHANGES        = ("bybit",)   # swallow upstream errors → empty response

# Screener defaults (per request)
FUNDING_CUT_NEG        = -0.0001
FUNDING_CUT_POS        = 0.00005
ALERT_FUNDING_CUT_NEG  = -0.01
ALERT_FUNDING_CUT_POS  = 0.002
MIN_MARKET_CAP_USD     = 100_000_000
MIN_TURNOVER_24H_USD   = 2_000_000
ALERT_TURNOVER_24H_USD = 10_000_000
LIMIT                  = 30
MAX_LIMIT              = 50


@dataclass(frozen=True)
class Settings:
    binance_base_url: str = BINANCE_FAPI
    bybit_base_url: str = BYBIT_REST
    coingecko_base_url: str = COINGECKO_REST
    request_timeout: float = HTTP_TIMEOUT
    user_agent: str = USER_AGENT

    coingecko_pages: int = CG_PAGES
    coingecko_per_page: int = CG_PER_PAGE
    coingecko_ttl: float = CG_TTL
    coingecko_max_attempts: int = CG_MAX_ATTEMPTS
    coingecko_backoff: float = CG_BACKOFF

    open_interest_max_attempts: int = OI_MAX_ATTEMPTS
    open_interest_backoff: float = OI_BACKOFF
    enrichment_concurrency: int = OI_CONCURRENCY

    allow_unknown_market_cap: bool = ALLOW_UNKNOWN_MARKET_CAP
    degrade_exchanges: Tuple[str, ...] = DEGRADE_EXCHANGES


def configure_logging(level=logging.INFO, logfile: Optional[str] = None):
    handlers = [logging.StreamHandler()]
    if logfile:
        handlers.append(logging.FileHandler(logfile))
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=handlers,
    )
    logging.info(f"Funding screener running on {socket.gethostname()}")

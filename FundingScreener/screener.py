# FundingScreener/screener.py
"""
One screener request, end to end:

1. market-cap index (cached, never fails)
2. universe + funding/turnover snapshots from the selected exchange
3. candidate rows: funding direction, 24h turnover, market cap
4. order by funding rate, 5. truncate to ``limit``
6. open interest for the surviving rows only
7. immutable response
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional

from .config import Settings
from .errors import UpstreamError
from .exchange import ExchangeAdapter, make_adapter
from .market_cap import SymbolIndex, SymbolIndexCache
from .models import ExchangeId, ScreenerFilters, ScreenerResponse, ScreenerRow
from .strategy import order_rows, passes_direction, passes_market_cap, passes_turnover
from .utils.time import iso_utc, now_utc
from .worker import EnrichmentPool

NO_NAME = "-"


class ScreenerEngine:

    def __init__(
        self,
        settings: Optional[Settings] = None,
        adapters: Optional[Mapping[ExchangeId, ExchangeAdapter]] = None,
        market_caps: Optional[SymbolIndexCache] = None,
        clock: Callable = now_utc,
    ):
        self.settings = settings or Settings()
        self.adapters: Dict[ExchangeId, ExchangeAdapter] = dict(adapters or {})
        self.market_caps = market_caps or SymbolIndexCache(self.settings)
        self.clock = clock

    def adapter(self, exchange_id: ExchangeId) -> ExchangeAdapter:
        exchange_id = ExchangeId(exchange_id)
        if exchange_id not in self.adapters:
            self.adapters[exchange_id] = make_adapter(exchange_id, self.settings)
        return self.adapters[exchange_id]

    def run(self, filters: ScreenerFilters) -> ScreenerResponse:
        index = self.market_caps.get_or_build(self.settings.coingecko_pages, self.settings.coingecko_per_page)
        adapter = self.adapter(filters.exchange)

        try:
            candidates = self._collect(adapter, filters, index)
        except UpstreamError as e:
            if not adapter.degrade_on_error:
                raise
            logging.warning(f"{adapter.name}: market data unavailable, returning empty screen – {e}")
            candidates = []

        limited = order_rows(candidates, filters.direction)[:max(1, filters.limit)]
        rows = EnrichmentPool(adapter.fetch_open_interest, adapter.enrichment_concurrency).run(limited)

        logging.info(
            f"{adapter.name} {filters.direction.value}: {len(candidates)} candidates → {len(limited)} rows"
        )
        return ScreenerResponse(
            updated_at_utc=iso_utc(self.clock()),
            filters=filters,
            rows=tuple(rows),
        )

    def _collect(self, adapter: ExchangeAdapter, filters: ScreenerFilters, index: SymbolIndex) -> List[ScreenerRow]:
        allowed, symbol_to_base = adapter.fetch_universe()
        funding, turnover = adapter.fetch_market_snapshots()

        rows: List[ScreenerRow] = []
        for sym in adapter.discovery_order(symbol_to_base, funding):
            if sym not in allowed:
                continue
            base = symbol_to_base.get(sym, "")
            snap = funding.get(sym)
            if snap is None or snap.funding_rate is None:
                continue
            if not passes_direction(snap.funding_rate, filters.direction, filters.funding_cut):
                continue

            t24 = turnover.get(sym)
            turnover_24h = t24.quote_volume_24h if t24 else None
            if not passes_turnover(turnover_24h, filters.min_turnover_24h_usd):
                continue

            base_u = base.upper()
            cap = index.get(base_u) if base_u else None
            market_cap = cap.market_cap_usd if cap else None
            if not passes_market_cap(market_cap, filters.min_market_cap_usd, self.settings.allow_unknown_market_cap):
                continue

            rows.append(ScreenerRow(
                symbol=sym,
                display_name=cap.display_name if cap else NO_NAME,
                ticker=base_u or sym,
                funding_rate=snap.funding_rate,
                market_cap_usd=market_cap,
                turnover_24h_usd=turnover_24h,
                next_funding_time_utc=snap.next_funding_time_utc,
                mark_price=snap.mark_price,
            ))
        return rows

# FundingScreener/worker.py
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from .models import ScreenerRow


class EnrichmentPool:
    """
    Adds open interest to an already truncated row list with at most
    ``concurrency`` threads. Each index is claimed exactly once from a shared
    counter and only that slot of the output list is written; rows are frozen,
    so the enriched row is a copy.
    """

    def __init__(self, fetch_open_interest: Callable[[str], Optional[float]], concurrency: int = 4):
        self.fetch_open_interest = fetch_open_interest
        self.concurrency = max(1, int(concurrency))

    def run(self, rows: Sequence[ScreenerRow]) -> List[ScreenerRow]:
        out = list(rows)
        if not out:
            return out

        counter = itertools.count()
        lock = threading.Lock()

        def claim() -> int:
            with lock:
                return next(counter)

        def worker():
            while True:
                idx = claim()
                if idx >= len(out):
                    return
                out[idx] = self._enrich(out[idx])

        n_workers = min(self.concurrency, len(out))
        threads = [
            threading.Thread(target=worker, name=f"oi-worker-{i}", daemon=True)
            for i in range(n_workers)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return out

    def _enrich(self, row: ScreenerRow) -> ScreenerRow:
        try:
            oi = self.fetch_open_interest(row.symbol)
        except Exception as e:
            logging.exception(f"{row.symbol}: open interest enrichment failed – {e}")
            return replace(row, open_interest=None, open_interest_value_usd=None)

        value = oi * row.mark_price if oi is not None and row.mark_price is not None else None
        return replace(row, open_interest=oi, open_interest_value_usd=value)

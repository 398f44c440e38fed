"""
Unit tests for the open-interest enrichment pool.
"""

import threading
import time
from dataclasses import FrozenInstanceError

import pytest

from FundingScreener.models import ScreenerRow
from FundingScreener.worker import EnrichmentPool


def row(symbol, mark=2.0):
    return ScreenerRow(
        symbol=symbol, display_name=symbol, ticker=symbol, funding_rate=-0.001,
        market_cap_usd=None, turnover_24h_usd=None, next_funding_time_utc="-", mark_price=mark,
    )


class Recorder:
    """Thread-safe fake fetcher that tracks calls and peak parallelism."""

    def __init__(self, values=None, delay=0.0):
        self.values = values or {}
        self.delay = delay
        self.calls = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, symbol):
        with self._lock:
            self.calls.append(symbol)
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            value = self.values.get(symbol, 100.0)
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            with self._lock:
                self.active -= 1


def test_each_row_fetched_exactly_once():
    rows = [row(f"S{i}USDT") for i in range(10)]
    fetch = Recorder()
    out = EnrichmentPool(fetch, concurrency=4).run(rows)

    assert sorted(fetch.calls) == sorted(r.symbol for r in rows)
    assert all(r.open_interest == 100.0 for r in out)
    assert all(r.open_interest_value_usd == pytest.approx(200.0) for r in out)


def test_value_needs_both_inputs():
    rows = [row("AUSDT", mark=None), row("BUSDT", mark=3.0)]
    out = EnrichmentPool(Recorder({'BUSDT': None}), concurrency=2).run(rows)

    assert out[0].open_interest == 100.0
    assert out[0].open_interest_value_usd is None
    assert out[1].open_interest is None
    assert out[1].open_interest_value_usd is None


def test_failure_is_confined_to_its_row():
    rows = [row("AUSDT"), row("BOOMUSDT"), row("CUSDT")]
    out = EnrichmentPool(Recorder({'BOOMUSDT': RuntimeError("boom")}), concurrency=3).run(rows)

    assert out[1].open_interest is None
    assert out[1].open_interest_value_usd is None
    assert out[0].open_interest == 100.0
    assert out[2].open_interest_value_usd == pytest.approx(200.0)


def test_input_rows_are_left_alone():
    rows = [row("AUSDT")]
    out = EnrichmentPool(Recorder(), concurrency=1).run(rows)

    assert rows[0].open_interest is None
    assert out[0].open_interest == 100.0
    assert out[0] is not rows[0]
    with pytest.raises(FrozenInstanceError):
        out[0].open_interest = 1.0


def test_concurrency_is_bounded():
    rows = [row(f"S{i}USDT") for i in range(12)]
    fetch = Recorder(delay=0.02)
    EnrichmentPool(fetch, concurrency=3).run(rows)

    assert len(fetch.calls) == 12
    assert 1 <= fetch.peak <= 3


def test_sequential_when_concurrency_is_one():
    rows = [row(f"S{i}USDT") for i in range(5)]
    fetch = Recorder(delay=0.005)
    EnrichmentPool(fetch, concurrency=1).run(rows)

    assert fetch.peak == 1
    assert fetch.calls == [r.symbol for r in rows]


def test_row_order_is_kept():
    rows = [row("ZUSDT"), row("AUSDT"), row("MUSDT")]
    out = EnrichmentPool(Recorder(delay=0.001), concurrency=3).run(rows)
    assert [r.symbol for r in out] == ["ZUSDT", "AUSDT", "MUSDT"]


def test_empty_input_makes_no_calls():
    fetch = Recorder()
    EnrichmentPool(fetch, concurrency=4).run([])
    assert fetch.calls == []


def test_concurrency_floor():
    assert EnrichmentPool(Recorder(), concurrency=0).concurrency == 1

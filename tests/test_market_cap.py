"""
Unit tests for the CoinGecko symbol index: TTL reuse, retries, partial pages,
stale-if-error and single-flight rebuilds.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from FundingScreener.config import Settings
from FundingScreener.market_cap import SymbolIndexCache
from tests.fixtures.market_data import coingecko_page, http_response


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def session():
    return MagicMock()


def make_cache(session, clock, sleeps, **overrides):
    settings = Settings(**overrides)
    return SymbolIndexCache(settings, session=session, clock=clock, sleep=sleeps.append)


PAGE_1 = coingecko_page(
    ('btc', 'Bitcoin', 1_300_000_000_000),
    ('eth', 'Ethereum', 380_000_000_000.9),
    ('eth', 'Ether Imposter', 5),
    ('', 'No Symbol', 1),
    ('nan', 'Broken', None),
    ('x', '', 1),
)


class TestBuild:

    def test_index_contents(self, session, clock, sleeps):
        session.get.return_value = http_response(200, PAGE_1)
        index = make_cache(session, clock, sleeps).get_or_build(1, 250)

        assert set(index) == {'BTC', 'ETH'}
        assert index['ETH'].display_name == 'Ethereum'
        assert index['ETH'].market_cap_usd == 380_000_000_000
        assert isinstance(index['BTC'].market_cap_usd, int)

    def test_request_shape(self, session, clock, sleeps):
        session.get.return_value = http_response(200, [])
        make_cache(session, clock, sleeps, user_agent="ua/1", request_timeout=9).get_or_build(1, 100)

        args, kwargs = session.get.call_args
        assert args[0] == "https://api.coingecko.com/api/v3/coins/markets"
        assert kwargs['params'] == {
            'vs_currency': 'usd', 'order': 'market_cap_desc', 'per_page': 100, 'page': 1, 'sparkline': 'false',
        }
        assert kwargs['headers'] == {'User-Agent': 'ua/1'}
        assert kwargs['timeout'] == 9

    def test_first_seen_wins_across_pages(self, session, clock, sleeps):
        session.get.side_effect = [
            http_response(200, coingecko_page(('uni', 'Uniswap', 5_000_000_000))),
            http_response(200, coingecko_page(('uni', 'Universe Token', 10), ('sol', 'Solana', 60_000_000_000))),
        ]
        index = make_cache(session, clock, sleeps).get_or_build(2, 1)
        assert index['UNI'].display_name == 'Uniswap'
        assert 'SOL' in index

    def test_rate_limit_is_retried_with_backoff(self, session, clock, sleeps):
        session.get.side_effect = [
            http_response(429),
            http_response(429),
            http_response(200, PAGE_1),
        ]
        index = make_cache(session, clock, sleeps, coingecko_backoff=2.0).get_or_build(1, 250)
        assert 'BTC' in index
        assert sleeps == [pytest.approx(2.0), pytest.approx(4.0)]

    def test_failure_mid_pagination_keeps_earlier_pages(self, session, clock, sleeps):
        session.get.side_effect = [
            http_response(200, coingecko_page(('btc', 'Bitcoin', 10))),
            http_response(500),
            http_response(200, coingecko_page(('eth', 'Ethereum', 10))),
        ]
        cache = make_cache(session, clock, sleeps)
        index = cache.get_or_build(3, 1)

        assert set(index) == {'BTC'}
        assert session.get.call_count == 2
        assert cache.stats()['builds'] == 1

    def test_non_list_page_is_skipped(self, session, clock, sleeps):
        session.get.side_effect = [
            http_response(200, {'status': {'error_code': 1}}),
            http_response(200, coingecko_page(('btc', 'Bitcoin', 10))),
        ]
        assert set(make_cache(session, clock, sleeps).get_or_build(2, 1)) == {'BTC'}


class TestCaching:

    def test_second_call_within_ttl_hits_cache(self, session, clock, sleeps):
        session.get.return_value = http_response(200, PAGE_1)
        cache = make_cache(session, clock, sleeps, coingecko_ttl=1800)

        first = cache.get_or_build(1, 250)
        clock.now += 1799
        second = cache.get_or_build(1, 250)

        assert second is first
        assert session.get.call_count == 1
        assert cache.stats()['hits'] == 1

    def test_keys_are_independent(self, session, clock, sleeps):
        session.get.return_value = http_response(200, PAGE_1)
        cache = make_cache(session, clock, sleeps)
        cache.get_or_build(1, 250)
        cache.get_or_build(1, 100)
        assert session.get.call_count == 2

    def test_expired_entry_is_rebuilt(self, session, clock, sleeps):
        session.get.side_effect = [
            http_response(200, coingecko_page(('btc', 'Bitcoin', 1))),
            http_response(200, coingecko_page(('btc', 'Bitcoin', 2))),
        ]
        cache = make_cache(session, clock, sleeps, coingecko_ttl=60)
        cache.get_or_build(1, 250)
        clock.now += 61
        assert cache.get_or_build(1, 250)['BTC'].market_cap_usd == 2

    def test_stale_value_served_when_rebuild_fails(self, session, clock, sleeps):
        session.get.side_effect = [
            http_response(200, PAGE_1),
            requests.ConnectionError("down"),
        ]
        cache = make_cache(session, clock, sleeps, coingecko_ttl=60)
        good = cache.get_or_build(1, 250)
        clock.now += 3600

        assert cache.get_or_build(1, 250) is good
        assert cache.stats()['stale_serves'] == 1

    def test_stale_value_served_after_exhausted_rate_limits(self, session, clock, sleeps):
        session.get.side_effect = [http_response(200, PAGE_1)] + [http_response(429)] * 3
        cache = make_cache(session, clock, sleeps, coingecko_ttl=60)
        good = cache.get_or_build(1, 250)
        clock.now += 61

        assert cache.get_or_build(1, 250) is good
        assert session.get.call_count == 4

    def test_nothing_cached_gives_empty_index_and_retries_next_time(self, session, clock, sleeps):
        session.get.side_effect = requests.Timeout("slow")
        cache = make_cache(session, clock, sleeps)

        assert cache.get_or_build(1, 250) == {}
        assert cache.get_or_build(1, 250) == {}
        assert session.get.call_count == 2
        assert cache.stats()['size'] == 0

    def test_bad_json_is_a_failed_build(self, session, clock, sleeps):
        resp = http_response(200)
        resp.json.side_effect = ValueError("Expecting value")
        session.get.return_value = resp
        assert make_cache(session, clock, sleeps).get_or_build(1, 250) == {}

    def test_invalidate(self, session, clock, sleeps):
        session.get.return_value = http_response(200, PAGE_1)
        cache = make_cache(session, clock, sleeps)
        cache.get_or_build(1, 250)
        cache.invalidate()
        cache.get_or_build(1, 250)
        assert session.get.call_count == 2


class TestSingleFlight:

    def test_concurrent_misses_share_one_build(self, clock, sleeps):
        release = threading.Event()
        entered = threading.Event()
        calls = []

        def slow_get(url, **kwargs):
            calls.append(kwargs['params']['page'])
            entered.set()
            release.wait(timeout=5)
            return http_response(200, PAGE_1)

        session = MagicMock()
        session.get.side_effect = slow_get
        cache = make_cache(session, clock, sleeps)

        results = []
        threads = [threading.Thread(target=lambda: results.append(cache.get_or_build(1, 250))) for _ in range(6)]
        for t in threads:
            t.start()
        assert entered.wait(timeout=5)
        time.sleep(0.05)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert len(calls) == 1
        assert len(results) == 6
        assert all(r is results[0] for r in results)
        assert 'BTC' in results[0]

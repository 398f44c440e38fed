"""
Conftest.py - shared fixtures for the screener tests.
"""

from datetime import datetime, timezone

import pytest

from FundingScreener.config import Settings
from tests.fixtures.market_data import make_filters


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def filters():
    """Factory: ``filters(direction='positive', limit=5)``."""
    return make_filters


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 5, 1, 12, 30, 15, 987654, tzinfo=timezone.utc)


@pytest.fixture
def sleeps():
    """Collects requested backoff delays instead of sleeping."""
    return []

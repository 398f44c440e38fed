# FundingScreener/strategy.py
"""
Screening rules
---------------
Pure functions, no I/O:

* **negative** – keep rates strictly below zero and at or below the cut; most negative first
* **positive** – keep rates strictly above zero and at or above the cut; most positive first

Rows with identical funding rates keep the order in which they were discovered.
"""
from __future__ import annotations

from functools import cmp_to_key
from typing import List, Optional, Sequence, TypeVar

from .models import Direction, ScreenerRow

Row = TypeVar("Row", bound=ScreenerRow)


def passes_direction(funding_rate: float, direction: Direction, funding_cut: float) -> bool:
    if Direction(direction) == Direction.NEGATIVE:
        if funding_rate >= 0:
            return False
        return funding_rate <= funding_cut
    if funding_rate <= 0:
        return False
    return funding_rate >= funding_cut


def passes_turnover(turnover: Optional[float], min_turnover: float) -> bool:
    return turnover is not None and turnover >= min_turnover


def passes_market_cap(market_cap: Optional[float], min_market_cap: float, allow_unknown: bool = False) -> bool:
    if market_cap is None:
        return allow_unknown
    return market_cap >= min_market_cap


def compare_for_ordering(a: ScreenerRow, b: ScreenerRow, direction: Direction) -> int:
    """-1 if ``a`` goes first, 1 if ``b`` does, 0 on equal funding rates."""
    x, y = a.funding_rate, b.funding_rate
    if Direction(direction) == Direction.POSITIVE:
        x, y = y, x
    return (x > y) - (x < y)


def order_rows(rows: Sequence[Row], direction: Direction) -> List[Row]:
    # discovery position is the explicit tie-break
    def cmp(p, q):
        return compare_for_ordering(p[1], q[1], direction) or (p[0] > q[0]) - (p[0] < q[0])

    return [row for _, row in sorted(enumerate(rows), key=cmp_to_key(cmp))]

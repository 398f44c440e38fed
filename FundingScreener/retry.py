# FundingScreener/retry.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Tuple, Type

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from .errors import RateLimited


@dataclass(frozen=True)
class RetryPolicy:
    """
    Linear backoff: the n-th failed attempt waits ``base_delay * n`` before the next one.
    Only exceptions in ``retry_on`` are retried; the last one is re-raised once
    ``max_attempts`` is spent, everything else propagates immediately.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    retry_on: Tuple[Type[BaseException], ...] = (RateLimited,)
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def call(self, fn: Callable, *args, **kwargs):
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_incrementing(start=self.base_delay, increment=self.base_delay),
            retry=retry_if_exception_type(self.retry_on),
            sleep=self.sleep,
            before_sleep=before_sleep_log(logging.getLogger(), logging.WARNING),
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)

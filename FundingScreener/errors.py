# FundingScreener/errors.py
"""
Upstream failure taxonomy shared by the exchange adapters and the market-cap index.

* ``RateLimited``          – the source asked us to slow down (HTTP 429/418); retried locally.
* ``UpstreamUnavailable``  – network error, timeout, non-2xx, malformed payload.
"""


class UpstreamError(Exception):
    def __init__(self, source: str, message: str = ""):
        self.source = source
        super().__init__(f"{source}: {message}" if message else source)


class RateLimited(UpstreamError):
    pass


class UpstreamUnavailable(UpstreamError):
    pass

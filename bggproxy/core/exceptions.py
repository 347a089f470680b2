"""Exceptions raised by the data-access layer.

Upstream failures are split into a small taxonomy so callers can tell
"try again shortly" conditions apart from permanent failures.
"""

from typing import Optional


class UpstreamError(Exception):
    """Base class for failures talking to the upstream XML API."""

    #: True when the same call is likely to succeed if repeated a bit later.
    retryable_later: bool = False

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class RateLimited(UpstreamError):
    """Upstream kept throttling us (429/502/503) after all retries."""

    retryable_later = True


class NetworkTransient(UpstreamError):
    """Timeout, connection reset or DNS failure that outlived the retries."""

    retryable_later = True


class ServerError(UpstreamError):
    """Non-retryable HTTP failure (404, other 4xx, unexpected 5xx)."""

    def __init__(self, message: str, status_code: int, path: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, path=path)


class ParseError(UpstreamError):
    """Upstream body could not be decoded as XML."""


class CacheError(Exception):
    """Raised at the cache tier boundaries; never escapes the cache layer."""

    def __init__(self, message: str, key: Optional[str] = None, tier: Optional[str] = None):
        self.key = key
        self.tier = tier
        super().__init__(message)

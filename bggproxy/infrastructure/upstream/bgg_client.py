"""Rate-limited, retrying client for the upstream XML API.

One `BggFetcher` instance is shared by the whole process: its rate limiter
holds the single watermark that spaces out every outbound request, whatever
the endpoint. Each HTTP attempt is classified into the typed upstream errors
and handed to `ApiRetryService`, which decides whether to try again.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from bggproxy.core.exceptions import NetworkTransient, RateLimited, ServerError
from bggproxy.domain.interfaces.upstream import UpstreamFetcher
from bggproxy.domain.models.common import RawPayload, UpstreamPath
from bggproxy.infrastructure.resilience.api_retry import ApiRetryService, DEFAULT_RETRY_DELAYS
from bggproxy.infrastructure.resilience.rate_limiter import (
    DEFAULT_MIN_SPACING_SECONDS,
    Clock,
    RateLimiter,
    Sleeper,
)
from bggproxy.infrastructure.xml.tree import parse_xml

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://boardgamegeek.com/xmlapi2"
DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "bggproxy/1.0 (+https://boardgamegeek.com/xmlapi2)"

# Upstream signals throttling with any of these, not only 429.
RATE_LIMIT_STATUS_CODES = frozenset({429, 502, 503})


def build_async_client(
    base_url: str = DEFAULT_BASE_URL,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    *,
    api_token: Optional[str] = None,
    extra_headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Creates the `httpx.AsyncClient` used for every upstream call.

    Centralizes timeout and headers so all endpoints behave the same, and
    lets tests swap the network out through `transport`.
    """
    headers: Dict[str, str] = {
        "User-Agent": USER_AGENT,
        "Accept": "application/xml,text/xml;q=0.9,*/*;q=0.8",
    }
    if api_token:
        headers["Authorization"] = f"Bearer {api_token}"
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


class BggFetcher(UpstreamFetcher):
    """Fetches upstream paths and returns them decoded as generic XML trees."""

    def __init__(self, client: httpx.AsyncClient, retry_service: ApiRetryService):
        self.client = client
        self.retry_service = retry_service

    @classmethod
    def create(
        cls,
        base_url: str = DEFAULT_BASE_URL,
        *,
        min_spacing: float = DEFAULT_MIN_SPACING_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        api_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> "BggFetcher":
        """Wires a fetcher with its own limiter, retry service and HTTP client."""
        limiter_kwargs: Dict[str, Any] = {"min_spacing": min_spacing, "sleep": sleep}
        if clock is not None:
            limiter_kwargs["clock"] = clock
        rate_limiter = RateLimiter(**limiter_kwargs)
        retry_service = ApiRetryService(rate_limiter, delays=retry_delays, sleep=sleep)
        client = build_async_client(
            base_url, timeout_seconds, api_token=api_token, transport=transport
        )
        return cls(client, retry_service)

    @property
    def rate_limiter(self) -> RateLimiter:
        return self.retry_service.rate_limiter

    async def fetch(self, path: UpstreamPath, params: Optional[Mapping[str, Any]] = None) -> RawPayload:
        """Fetches one upstream path with spacing and retries.

        Args:
            path: Path relative to the base URL, e.g. '/thing'.
            params: Query parameters; None values are dropped.

        Returns:
            The decoded generic XML tree.

        Raises:
            RateLimited, NetworkTransient, ServerError, ParseError
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        return await self.retry_service.execute_with_retry(self._attempt, path, query, path=path)

    async def _attempt(self, path: UpstreamPath, params: Mapping[str, Any]) -> RawPayload:
        """Performs exactly one HTTP attempt and classifies its outcome."""
        try:
            response = await self.client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise NetworkTransient(f"Timeout calling upstream: {e!r}", path=path) from e
        except (httpx.NetworkError, httpx.RemoteProtocolError) as e:
            # ConnectError covers DNS failures, ReadError covers resets
            raise NetworkTransient(f"Network error calling upstream: {e!r}", path=path) from e
        except httpx.HTTPError as e:
            raise ServerError(f"Upstream request could not be sent: {e!r}", status_code=0, path=path) from e

        status = response.status_code
        if status in RATE_LIMIT_STATUS_CODES:
            raise RateLimited(f"Upstream returned HTTP {status}", path=path)
        if status >= 400:
            raise ServerError(f"Upstream returned HTTP {status}", status_code=status, path=path)
        return parse_xml(response.content, path=path)

    async def close(self) -> None:
        await self.client.aclose()

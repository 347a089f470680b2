"""Implementation of a rate limiter.

Controls the spacing of outgoing requests to stay under the upstream's
single per-client limit. Uses one "last request" watermark shared by every
endpoint: each caller waits until `min_spacing` has elapsed since the
previous request, then moves the watermark forward.
"""

import time
import asyncio
import logging
from typing import Awaitable, Callable

from bggproxy.domain.events.api_events import UpstreamCallDeferred, dispatch_event

logger = logging.getLogger(__name__)

DEFAULT_MIN_SPACING_SECONDS = 5.0  # upstream asks for roughly one request per 5 seconds

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Single-watermark rate limiter.

    Owned by one fetcher instance; never a module-level singleton, so tests
    can run isolated limiters against their own fake clock.
    """

    def __init__(
        self,
        min_spacing: float = DEFAULT_MIN_SPACING_SECONDS,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initializes the rate limiter.

        Args:
            min_spacing: Minimum number of seconds between two requests.
            clock: Monotonic time source (injectable for tests).
            sleep: Coroutine used to suspend the caller (injectable for tests).
        """
        self.min_spacing = max(0.0, float(min_spacing))
        self._clock = clock
        self._sleep = sleep
        self._last_request = float("-inf")
        self._lock = asyncio.Lock()
        logger.info(f"RateLimiter initialized: min spacing {self.min_spacing:.2f}s")

    @property
    def watermark(self) -> float:
        """Clock value of the last granted request."""
        return self._last_request

    def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be made."""
        elapsed = self._clock() - self._last_request
        return max(0.0, self.min_spacing - elapsed)

    async def wait_for_permission(self) -> float:
        """Waits until a request is permitted, then advances the watermark.

        Callers are served one at a time: the lock is held across the wait so
        that concurrent callers queue up behind each other instead of all
        waking at the same instant.

        Returns:
            The number of seconds the caller was suspended.
        """
        async with self._lock:
            wait_time = self.get_wait_time()
            if wait_time > 0:
                logger.debug(f"Rate limit: waiting {wait_time:.2f} seconds before next request.")
                dispatch_event(UpstreamCallDeferred(wait_time_seconds=wait_time))
                await self._sleep(wait_time)
            self._last_request = self._clock()
            return wait_time

"""Service for executing upstream calls with rate limiting and automatic retries.

Implements a bounded retry loop over a precomputed delay table for
transient errors: throttling (429/502/503) and network failures (timeouts,
connection resets, DNS errors). Everything else fails on first occurrence.
"""

import logging
import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, Sequence

from bggproxy.core.exceptions import (
    NetworkTransient,
    ParseError,
    RateLimited,
    ServerError,
    UpstreamError,
)
from bggproxy.domain.events.api_events import (
    RetryScheduled,
    UpstreamCallFailed,
    UpstreamCallInitiated,
    UpstreamCallSucceeded,
    dispatch_event,
)
from bggproxy.domain.models.common import BackoffPolicy
from bggproxy.infrastructure.resilience.rate_limiter import RateLimiter, Sleeper

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAYS = (1.0, 2.0, 4.0)

RETRYABLE_EXCEPTIONS = (RateLimited, NetworkTransient)
NON_RETRYABLE_EXCEPTIONS = (ServerError, ParseError)

RATE_LIMIT_MESSAGE = (
    "Upstream API is currently rate limiting requests. Please try again in a few seconds."
)


class ApiRetryService:
    """Handles upstream call execution with rate limiting and retries."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        max_retries: Optional[int] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initializes the ApiRetryService.

        Args:
            rate_limiter: The shared limiter every attempt must pass through.
            delays: Backoff delay before retry 1, 2, 3, ...; the last value is
                reused if `max_retries` exceeds the table.
            max_retries: Extra attempts after the first one (defaults to len(delays)).
            sleep: Coroutine used for the backoff (injectable for tests).
        """
        self.rate_limiter = rate_limiter
        self.delays = tuple(float(d) for d in delays) or DEFAULT_RETRY_DELAYS
        self.max_retries = len(self.delays) if max_retries is None else max(0, max_retries)
        self._sleep = sleep
        logger.info(f"ApiRetryService initialized: max_retries={self.max_retries}, delays={list(self.delays)}")

    @property
    def policy(self) -> BackoffPolicy:
        return {"max_retries": self.max_retries, "delays": list(self.delays)}

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after the given (0-based) failed attempt."""
        return self.delays[min(attempt, len(self.delays) - 1)]

    async def execute_with_retry(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        path: Optional[str] = None,
        **kwargs: Any
    ) -> Any:
        """Executes an async upstream call with rate limiting and retries.

        Args:
            func: The coroutine function performing one HTTP attempt. It must
                raise the typed upstream errors from `bggproxy.core.exceptions`.
            *args: Positional arguments for the function.
            path: Upstream path, for logging and events.
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the first successful attempt.

        Raises:
            RateLimited: If throttling persisted through every retry.
            NetworkTransient: If network failures persisted through every retry.
            ServerError, ParseError: On first occurrence, without retrying.
        """
        effective_path = path or getattr(func, "__name__", "upstream")
        last_exception: Optional[UpstreamError] = None
        attempts = 0

        for attempt in range(self.max_retries + 1):
            attempts = attempt + 1
            # The watermark advances on every attempt, retries included.
            await self.rate_limiter.wait_for_permission()
            dispatch_event(UpstreamCallInitiated(path=effective_path, attempt_number=attempts))
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except NON_RETRYABLE_EXCEPTIONS as e:
                logger.error(f"Non-retryable error calling {effective_path} on attempt {attempts}: {e}")
                dispatch_event(UpstreamCallFailed(path=effective_path, error_type=type(e).__name__, error_message=str(e), attempts=attempts))
                raise
            except RETRYABLE_EXCEPTIONS as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self.delay_for(attempt)
                    logger.warning(
                        f"Retryable error calling {effective_path} on attempt {attempts}/{self.max_retries + 1}: "
                        f"{type(e).__name__}: {e}. Waiting {delay:.2f}s..."
                    )
                    dispatch_event(RetryScheduled(path=effective_path, attempt_number=attempts, delay_seconds=delay, reason=type(e).__name__))
                    await self._sleep(delay)
                    continue
                logger.error(f"Max retries ({self.max_retries}) reached for {effective_path}. Last error: {e}")
                break
            else:
                latency_ms = (time.perf_counter() - start_time) * 1000
                dispatch_event(UpstreamCallSucceeded(path=effective_path, latency_ms=latency_ms, attempts=attempts))
                return result

        final_error = last_exception or NetworkTransient("Unknown error after retries", path=effective_path)
        dispatch_event(UpstreamCallFailed(path=effective_path, error_type=type(final_error).__name__, error_message=str(final_error), attempts=attempts))
        if isinstance(final_error, RateLimited):
            raise RateLimited(RATE_LIMIT_MESSAGE, path=effective_path) from final_error
        raise NetworkTransient(
            f"Upstream request failed after {attempts} attempts: {final_error}", path=effective_path
        ) from final_error

"""In-process L1 cache with per-key absolute expiry.

Entries expire lazily on read; `cleanup()` (or the `run_sweeper` loop)
removes expired entries proactively. The cache is bounded: when full, the
oldest inserted entry is evicted first.

Values are deep-copied on the way in and out; callers never share state
with a cached entry.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from bggproxy.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_L1_MAX_ITEMS = 1000
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


@dataclass
class CacheEntry:
    """Internal representation of a cache entry with expiry."""
    value: Any
    created_at: float
    expiry_time: Optional[float]  # None means no expiry

    def is_expired(self, now: float) -> bool:
        return self.expiry_time is not None and now >= self.expiry_time


class MemoryCache:
    """Bounded dict-backed cache. Not shared across processes."""

    def __init__(
        self,
        max_items: int = DEFAULT_L1_MAX_ITEMS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_items = max(1, max_items)
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None

    def get(self, key: CacheKey) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug(f"L1 entry expired for key: {key}")
            return None
        return copy.deepcopy(entry.value)

    def set(self, key: CacheKey, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Stores a value; `ttl_seconds` of None or <= 0 keeps it until evicted."""
        now = self._clock()
        expiry = now + ttl_seconds if ttl_seconds is not None and ttl_seconds > 0 else None
        # Re-insert so a rewritten key counts as the newest
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=copy.deepcopy(value), created_at=now, expiry_time=expiry)
        self._evict_overflow()

    def delete(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Removes every expired entry. Returns how many were removed."""
        now = self._clock()
        expired_keys = [k for k, v in self._entries.items() if v.is_expired(now)]
        for k in expired_keys:
            del self._entries[k]
        if expired_keys:
            logger.debug(f"L1 cleanup removed {len(expired_keys)} expired entries")
        return len(expired_keys)

    def _evict_overflow(self) -> None:
        while len(self._entries) > self.max_items:
            # Dicts keep insertion order, so the first key is the oldest
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug(f"L1 evicted oldest entry: {oldest_key}")

    async def run_sweeper(self, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        """Calls `cleanup()` every `interval_seconds` until cancelled."""
        logger.info(f"L1 sweeper started (interval {interval_seconds:.0f}s)")
        try:
            while True:
                await asyncio.sleep(interval_seconds)
                self.cleanup()
        except asyncio.CancelledError:
            logger.info("L1 sweeper stopped")
            raise

"""Concrete implementation of the two-level Caching Service.

L1 is an in-process `MemoryCache`; L2 is whichever `StorageBackend` the
configuration selects. L2 is only consulted on an L1 miss, and an L2 hit is
copied back into L1. Every tier call is wrapped so that its failure surfaces
as a `CacheError`, which is logged and treated as a miss or a no-op.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

# Core Layer Imports
from bggproxy.core.exceptions import CacheError

# Domain Layer Imports
from bggproxy.domain.interfaces.cache import CacheService
from bggproxy.domain.interfaces.storage import StorageBackend
from bggproxy.domain.models.common import CacheKey, TtlPolicy

# Infrastructure Layer Imports
from bggproxy.infrastructure.cache.memory_cache import MemoryCache
from bggproxy.infrastructure.storage.noop import NoopStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_L1_TTL_SECONDS = 5 * 60
DEFAULT_L2_TTL_SECONDS = 60 * 60
DEFAULT_TTL_POLICY = TtlPolicy(l1_seconds=DEFAULT_L1_TTL_SECONDS, l2_seconds=DEFAULT_L2_TTL_SECONDS)

LEVELS = ('l1', 'l2', 'all')


class CachingServiceImpl(CacheService):
    """Two-level cache implementation (L1 memory, L2 pluggable storage)."""

    def __init__(
        self,
        l1: Optional[MemoryCache] = None,
        l2: Optional[StorageBackend] = None,
        default_ttl: TtlPolicy = DEFAULT_TTL_POLICY,
    ):
        """Initializes the caching service.

        Args:
            l1: In-memory tier (a fresh MemoryCache if omitted).
            l2: Durable tier (no-op storage if omitted).
            default_ttl: Used when a call passes no TTL policy.
        """
        self.l1 = l1 if l1 is not None else MemoryCache()
        self.l2 = l2 if l2 is not None else NoopStorage()
        self.default_ttl = default_ttl
        logger.info(
            f"CachingService initialized. L1(max={self.l1.max_items}), L2(backend={self.l2.name})"
        )

    @staticmethod
    def _check_level(level: str) -> None:
        if level not in LEVELS:
            raise ValueError(f"Unknown cache level '{level}', expected one of {LEVELS}")

    # --- Tier boundaries ---

    def _l1_call(self, action: str, key: Optional[CacheKey], func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except Exception as e:
            raise CacheError(f"L1 {action} failed for key {key}: {e}", key=key, tier='l1') from e

    async def _l2_call(self, action: str, key: Optional[CacheKey], call: Awaitable[T]) -> T:
        try:
            return await call
        except Exception as e:
            raise CacheError(
                f"L2 {action} failed for key {key} ({self.l2.name}): {e}", key=key, tier='l2'
            ) from e

    # --- CacheService Interface Implementation ---

    async def get(
        self, key: CacheKey, ttl: Optional[TtlPolicy] = None, level: str = 'all'
    ) -> Optional[Any]:
        """Retrieves an item from the specified cache level(s)."""
        self._check_level(level)
        policy = ttl or self.default_ttl

        if level in ('l1', 'all'):
            try:
                value = self._l1_call("read", key, self.l1.get, key)
            except CacheError as e:
                logger.warning(str(e), exc_info=True)
                value = None
            if value is not None:
                logger.debug(f"L1 cache hit for key: {key}")
                return value

        if level in ('l2', 'all'):
            try:
                value = await self._l2_call("read", key, self.l2.retrieve(key))
            except CacheError as e:
                logger.warning(str(e), exc_info=True)
                value = None
            if value is not None:
                logger.debug(f"L2 cache hit for key: {key}")
                if level == 'all':
                    self._set_l1(key, value, policy)
                return value

        logger.debug(f"Cache miss for key: {key} across checked levels: {level}")
        return None

    async def set(
        self, key: CacheKey, value: Any, ttl: Optional[TtlPolicy] = None, level: str = 'all'
    ) -> None:
        """Stores an item in the specified cache level(s). None values are ignored."""
        self._check_level(level)
        if value is None:
            return
        policy = ttl or self.default_ttl

        if level in ('l1', 'all'):
            self._set_l1(key, value, policy)

        if level in ('l2', 'all'):
            try:
                await self._l2_call("write", key, self.l2.store(key, value, policy.l2_seconds))
                logger.debug(f"Stored item in L2 cache: key={key}, ttl={policy.l2_seconds}s")
            except CacheError as e:
                logger.warning(str(e), exc_info=True)

    def _set_l1(self, key: CacheKey, value: Any, policy: TtlPolicy) -> None:
        try:
            self._l1_call("write", key, self.l1.set, key, value, policy.l1_seconds)
            logger.debug(f"Stored item in L1 cache: key={key}, ttl={policy.l1_seconds}s")
        except CacheError as e:
            logger.warning(str(e), exc_info=True)

    async def delete(self, key: CacheKey, level: str = 'all') -> None:
        """Deletes an item from the specified cache level(s)."""
        self._check_level(level)
        if level in ('l1', 'all'):
            if self.l1.delete(key):
                logger.debug(f"Deleted item from L1 cache: key={key}")

        if level in ('l2', 'all'):
            try:
                await self._l2_call("delete", key, self.l2.remove(key))
                logger.debug(f"Deleted item from L2 cache: key={key}")
            except CacheError as e:
                logger.warning(str(e), exc_info=True)

    async def clear(self, level: str = 'all') -> None:
        """Clears all items from the specified cache level(s)."""
        self._check_level(level)
        if level in ('l1', 'all'):
            self.l1.clear()
            logger.info("Cleared L1 (in-memory) cache.")

        if level in ('l2', 'all'):
            try:
                await self._l2_call("clear", None, self.l2.clear())
                logger.info(f"Cleared L2 ({self.l2.name}) cache.")
            except CacheError as e:
                logger.error(str(e), exc_info=True)

    async def close(self) -> None:
        try:
            await self._l2_call("close", None, self.l2.close())
        except CacheError as e:
            logger.warning(str(e), exc_info=True)

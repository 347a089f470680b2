"""Interface for caching mechanisms.

Defines the contract for storing, retrieving, and managing cached data,
supporting two levels (L1 in-memory, L2 durable storage) with per-entity
TTL strategies.
"""

import abc
from typing import Any, Optional

# Import relevant domain models
from ..models.common import CacheKey, TtlPolicy


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations.

    Implementations must never raise: any internal failure is logged and
    reported as a miss (for reads) or silently dropped (for writes).
    """

    @abc.abstractmethod
    async def get(
        self,
        key: CacheKey,
        ttl: Optional[TtlPolicy] = None,
        level: str = 'all'
    ) -> Optional[Any]:
        """Retrieves an item from the cache asynchronously.

        Searches specified levels (or all) in order (L1, L2). An L2 hit is
        written back into L1 using the L1 part of `ttl`.

        Args:
            key: The cache key to retrieve.
            ttl: TTL policy of the entity, used for the L1 backfill.
            level: The cache level(s) to check ('l1', 'l2', 'all').

        Returns:
            The cached payload if found and not expired, otherwise None.
        """
        pass

    @abc.abstractmethod
    async def set(
        self,
        key: CacheKey,
        value: Any,
        ttl: Optional[TtlPolicy] = None,
        level: str = 'all'
    ) -> None:
        """Stores an item in the specified cache level(s) asynchronously.

        Args:
            key: The cache key to store the item under.
            value: The JSON-serializable payload to store.
            ttl: TTL policy of the entity (uses level defaults if None).
            level: The cache level(s) to store in ('l1', 'l2', 'all').
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey, level: str = 'all') -> None:
        """Deletes an item from the specified cache level(s) asynchronously.

        Args:
            key: The cache key to delete.
            level: The cache level(s) to delete from ('l1', 'l2', 'all').
        """
        pass

    @abc.abstractmethod
    async def clear(self, level: str = 'all') -> None:
        """Clears all items from the specified cache level(s) asynchronously.

        Args:
            level: The cache level(s) to clear ('l1', 'l2', 'all').
        """
        pass

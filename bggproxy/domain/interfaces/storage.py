"""Interface for durable key-value storage (the L2 cache tier).

Every backend (JSON file, Redis, disk cache, no-op) honours the same
semantics, so the caching service never needs to know which one is active.
"""

import abc
from typing import Any, Optional

from ..models.common import CacheKey


class StorageBackend(abc.ABC):
    """Abstract Base Class for L2 storage backends."""

    #: Short name used by configuration ('file', 'redis', 'disk', 'noop').
    name: str = "abstract"

    @abc.abstractmethod
    async def store(self, key: CacheKey, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Stores a JSON-serializable value, replacing any previous one.

        Args:
            key: The key to store under.
            value: The payload.
            ttl_seconds: Lifetime of the entry; None or <= 0 means no expiry.
        """
        pass

    @abc.abstractmethod
    async def retrieve(self, key: CacheKey) -> Optional[Any]:
        """Returns the stored value, or None if absent or expired."""
        pass

    @abc.abstractmethod
    async def remove(self, key: CacheKey) -> None:
        """Deletes the entry if present."""
        pass

    async def clear(self) -> None:
        """Removes every entry. Backends that cannot enumerate keys may ignore this."""
        return None

    async def close(self) -> None:
        """Releases connections or file handles held by the backend."""
        return None

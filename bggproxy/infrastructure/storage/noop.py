"""L2 storage that stores nothing; every lookup is a miss."""

from typing import Any, Optional

from bggproxy.domain.interfaces.storage import StorageBackend
from bggproxy.domain.models.common import CacheKey


class NoopStorage(StorageBackend):
    name = "noop"

    async def store(self, key: CacheKey, value: Any, ttl_seconds: Optional[int] = None) -> None:
        return None

    async def retrieve(self, key: CacheKey) -> Optional[Any]:
        return None

    async def remove(self, key: CacheKey) -> None:
        return None

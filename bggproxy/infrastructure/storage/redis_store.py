"""Hosted key-value L2 storage on Redis.

Values are JSON-encoded; expiry is enforced server side with `SET ... EX`.
All keys are namespaced with a prefix so several deployments can share
one database and `clear()` only touches our own keys.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from bggproxy.domain.interfaces.storage import StorageBackend
from bggproxy.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_KEY_PREFIX = "bggproxy:"
SCAN_BATCH_SIZE = 500


class RedisStorage(StorageBackend):
    """Stores entries in Redis with native TTLs."""

    name = "redis"

    def __init__(
        self,
        redis_url: str = DEFAULT_REDIS_URL,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        # Connections are opened lazily by the client on first command
        self.redis = client if client is not None else redis.from_url(redis_url, decode_responses=True)

    def _key(self, key: CacheKey) -> str:
        return f"{self.key_prefix}{key}"

    async def store(self, key: CacheKey, value: Any, ttl_seconds: Optional[int] = None) -> None:
        payload = json.dumps(value)
        if ttl_seconds is not None and ttl_seconds > 0:
            await self.redis.set(self._key(key), payload, ex=int(ttl_seconds))
        else:
            await self.redis.set(self._key(key), payload)

    async def retrieve(self, key: CacheKey) -> Optional[Any]:
        payload = await self.redis.get(self._key(key))
        if payload is None:
            return None
        return json.loads(payload)

    async def remove(self, key: CacheKey) -> None:
        await self.redis.delete(self._key(key))

    async def clear(self) -> None:
        batch = []
        removed = 0
        async for redis_key in self.redis.scan_iter(match=f"{self.key_prefix}*", count=SCAN_BATCH_SIZE):
            batch.append(redis_key)
            if len(batch) >= SCAN_BATCH_SIZE:
                removed += await self.redis.delete(*batch)
                batch = []
        if batch:
            removed += await self.redis.delete(*batch)
        logger.info(f"Removed {removed} keys with prefix '{self.key_prefix}' from Redis")

    async def close(self) -> None:
        await self.redis.aclose()

"""On-disk L2 storage backed by `diskcache`.

A directory-based store that survives restarts without any external
service; expiry is handled natively by diskcache.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import diskcache as dc

from bggproxy.domain.interfaces.storage import StorageBackend
from bggproxy.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".bggproxy" / "l2_cache"


class DiskCacheStorage(StorageBackend):
    """Stores JSON-encoded entries in a diskcache directory."""

    name = "disk"

    def __init__(self, cache_dir: Union[str, Path] = DEFAULT_CACHE_DIR):
        self.cache_dir = Path(cache_dir).expanduser()
        # Diskcache uses seconds for expire
        self.disk_cache = dc.Cache(str(self.cache_dir), timeout=1)
        logger.info(f"Initialized disk storage at: {self.disk_cache.directory}")

    async def store(self, key: CacheKey, value: Any, ttl_seconds: Optional[int] = None) -> None:
        payload = json.dumps(value)
        expire = ttl_seconds if ttl_seconds is not None and ttl_seconds > 0 else None
        await asyncio.to_thread(self.disk_cache.set, key, payload, expire=expire)

    async def retrieve(self, key: CacheKey) -> Optional[Any]:
        payload = await asyncio.to_thread(self.disk_cache.get, key)
        if payload is None:
            return None
        return json.loads(payload)

    async def remove(self, key: CacheKey) -> None:
        await asyncio.to_thread(self.disk_cache.delete, key)

    async def clear(self) -> None:
        removed = await asyncio.to_thread(self.disk_cache.clear)
        logger.info(f"Cleared {removed} entries from disk storage")

    async def close(self) -> None:
        self.disk_cache.close()

"""Selects the L2 storage backend from configuration."""

import logging
from typing import Any, Dict, Optional

from bggproxy.domain.interfaces.storage import StorageBackend
from bggproxy.infrastructure.storage.noop import NoopStorage

logger = logging.getLogger(__name__)

STORAGE_KINDS = ("file", "redis", "disk", "noop")


def create_storage_backend(kind: Optional[str], options: Optional[Dict[str, Any]] = None) -> StorageBackend:
    """Builds the backend named by `kind`.

    Args:
        kind: One of 'file', 'redis', 'disk' or 'noop' (case-insensitive).
        options: Backend settings; recognized keys are 'file_path' (file),
            'redis_url' and 'key_prefix' (redis) and 'cache_dir' (disk).

    Returns:
        The backend. Unknown kinds yield a `NoopStorage` after a warning.
    """
    options = options or {}
    normalized = (kind or "noop").strip().lower()

    if normalized == "file":
        from bggproxy.infrastructure.storage.json_file import JsonFileStorage
        path = options.get("file_path")
        backend: StorageBackend = JsonFileStorage(path) if path else JsonFileStorage()
    elif normalized == "redis":
        from bggproxy.infrastructure.storage.redis_store import RedisStorage
        kwargs = {k: options[k] for k in ("redis_url", "key_prefix") if options.get(k)}
        backend = RedisStorage(**kwargs)
    elif normalized == "disk":
        from bggproxy.infrastructure.storage.disk_store import DiskCacheStorage
        cache_dir = options.get("cache_dir")
        backend = DiskCacheStorage(cache_dir) if cache_dir else DiskCacheStorage()
    elif normalized == "noop":
        backend = NoopStorage()
    else:
        logger.warning(f"Unknown storage type '{kind}', expected one of {STORAGE_KINDS}. Using no-op storage.")
        backend = NoopStorage()

    logger.info(f"Using '{backend.name}' storage backend")
    return backend

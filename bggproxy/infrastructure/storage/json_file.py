"""File-backed L2 storage: a single JSON snapshot of every entry.

Meant for local development. The snapshot is loaded on first use and
rewritten after every mutation (temp file + `os.replace`); writers are
serialized by one lock so concurrent mutations cannot interleave.

On-disk layout::

    {"thing:13": {"data": {...}, "ttl": 1735689600, "createdAt": "2024-...Z"}}

`ttl` is an absolute epoch second, omitted when the entry never expires.
"""

import asyncio
import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from bggproxy.domain.interfaces.storage import StorageBackend
from bggproxy.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_DB_FILE = Path("./keyValueDatabase.json")


class JsonFileStorage(StorageBackend):
    """Stores entries in one JSON file on the local filesystem."""

    name = "file"

    def __init__(
        self,
        path: Union[str, Path] = DEFAULT_DB_FILE,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path).expanduser()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._database: Optional[Dict[str, Dict[str, Any]]] = None

    # --- Snapshot handling ---

    def _read_snapshot(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load storage file {self.path}: {e}. Starting empty.")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Storage file {self.path} does not contain an object. Starting empty.")
            return {}
        return data

    def _write_snapshot(self, snapshot: Dict[str, Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            os.replace(temp_path, self.path)
        except (TypeError, ValueError, OSError):
            temp_path.unlink(missing_ok=True)
            raise

    async def _load(self) -> Dict[str, Dict[str, Any]]:
        # Caller holds the lock
        if self._database is None:
            self._database = await asyncio.to_thread(self._read_snapshot)
            logger.info(f"Loaded {len(self._database)} entries from {self.path}")
        return self._database

    async def _persist(self) -> None:
        # Snapshot is taken under the lock, so the file never sees a half-applied mutation
        snapshot = dict(self._database or {})
        await asyncio.to_thread(self._write_snapshot, snapshot)

    def _is_expired(self, entry: Dict[str, Any]) -> bool:
        expires_at = entry.get("ttl")
        return expires_at is not None and self._clock() > expires_at

    # --- StorageBackend Interface Implementation ---

    async def store(self, key: CacheKey, value: Any, ttl_seconds: Optional[int] = None) -> None:
        # Fail before touching the snapshot if the value cannot be encoded
        json.dumps(value)
        now = self._clock()
        entry: Dict[str, Any] = {
            "data": value,
            "createdAt": datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
        }
        if ttl_seconds is not None and ttl_seconds > 0:
            entry["ttl"] = int(now + ttl_seconds)
        async with self._lock:
            database = await self._load()
            database[key] = entry
            await self._persist()
        logger.debug(f"Stored data for key: {key}")

    async def retrieve(self, key: CacheKey) -> Optional[Any]:
        async with self._lock:
            database = await self._load()
            entry = database.get(key)
            if entry is None:
                return None
            if self._is_expired(entry):
                del database[key]
                await self._persist()
                logger.debug(f"Dropped expired entry for key: {key}")
                return None
            return entry.get("data")

    async def remove(self, key: CacheKey) -> None:
        async with self._lock:
            database = await self._load()
            if database.pop(key, None) is not None:
                await self._persist()
                logger.debug(f"Removed data for key: {key}")

    async def clear(self) -> None:
        async with self._lock:
            self._database = {}
            await self._persist()

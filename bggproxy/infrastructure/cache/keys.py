"""Cache key construction for every entity family.

Keys are stable across processes (they are shared with the L2 store), so
parameter hashes use sha256 over a canonical JSON encoding rather than
Python's randomized `hash()`.
"""

import hashlib
import json
from typing import Any, Mapping, Optional

from bggproxy.domain.models.common import CacheKey, CachePrefix, EntityType, GeeklistId, ThingId, Username

HASH_LENGTH = 16


def params_hash(params: Mapping[str, Any]) -> str:
    """Short, order-independent digest of a parameter mapping (None values ignored)."""
    canonical = json.dumps(
        {k: v for k, v in params.items() if v is not None},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def _user(username: Username) -> str:
    return username.strip().lower()


def _prefix(entity: EntityType) -> CachePrefix:
    return CachePrefix(entity.value)


def thing_key(thing_id: ThingId) -> CacheKey:
    return CacheKey(f"{_prefix(EntityType.THING)}:{thing_id}")


def user_key(username: Username) -> CacheKey:
    return CacheKey(f"{_prefix(EntityType.USER)}:{_user(username)}")


def collection_key(username: Username, subtype: Optional[str] = None) -> CacheKey:
    return CacheKey(f"{_prefix(EntityType.COLLECTION)}:{_user(username)}:{(subtype or 'all').lower()}")


def plays_key(username: Username, filters: Optional[Mapping[str, Any]] = None) -> CacheKey:
    return CacheKey(f"{_prefix(EntityType.PLAYS)}:{_user(username)}:{params_hash(filters or {})}")


def geeklist_key(geeklist_id: GeeklistId) -> CacheKey:
    return CacheKey(f"{_prefix(EntityType.GEEKLIST)}:{geeklist_id}")


def geeklists_key(username: Username, page: int = 1) -> CacheKey:
    return CacheKey(f"{_prefix(EntityType.GEEKLISTS)}:{_user(username)}:{page}")


def hot_key(item_type: Optional[str] = None) -> CacheKey:
    return CacheKey(f"{_prefix(EntityType.HOT_ITEMS)}:{item_type or 'all'}")


def search_key(query: str, item_type: Optional[str] = None, exact: bool = False) -> CacheKey:
    digest = params_hash({"query": query, "type": item_type or "all", "exact": bool(exact)})
    return CacheKey(f"{_prefix(EntityType.SEARCH)}:{digest}")

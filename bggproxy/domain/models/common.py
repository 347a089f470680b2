"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like upstream identifiers, usernames
and cache keys, ensuring consistency and type safety.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType, List, Union, Dict, TypedDict, Optional

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
ThingId = NewType("ThingId", str)              # Upstream id of a catalog entity
Username = NewType("Username", str)            # Upstream account name
GeeklistId = NewType("GeeklistId", str)        # Upstream id of a geeklist
UpstreamPath = NewType("UpstreamPath", str)    # Path relative to the API base URL

# === Parsed XML Context ===
# Generic tree produced by the XML decoder: scalar | keyed-map | ordered-list.
XmlValue = Union[str, Dict[str, "XmlValue"], List["XmlValue"]]
RawPayload = XmlValue

# === Caching Context ===
CacheKey = NewType("CacheKey", str)              # Unique key for a cache entry
CachePrefix = NewType("CachePrefix", str)      # Prefix for categorizing cache keys (e.g., 'thing')


class EntityType(str, Enum):
    """Entity families with their own cache TTL policy."""
    THING = "thing"
    USER = "user"
    COLLECTION = "collection"
    PLAYS = "plays"
    GEEKLIST = "geeklist"
    GEEKLISTS = "geeklists"
    HOT_ITEMS = "hot"
    SEARCH = "search"


# --- Structured Data ---
class BackoffPolicy(TypedDict):
    """Value Object representing retry backoff configuration."""
    max_retries: int
    delays: List[float]


class PlayFilters(TypedDict, total=False):
    """Optional filters accepted by the plays endpoint."""
    id: Optional[str]
    mindate: Optional[str]
    maxdate: Optional[str]
    page: Optional[int]


@dataclass(frozen=True)
class TtlPolicy:
    """Time-to-live of one entity family in each cache tier, in seconds."""
    l1_seconds: int
    l2_seconds: int

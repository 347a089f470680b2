"""Domain models for a user's collection snapshot.

A `Collection` is only ever cached and returned as a whole; its items have
no identity outside the snapshot they were fetched in.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class CollectionStatus:
    """Ownership / wish flags of one collection entry."""
    own: bool = False
    prev_owned: bool = False
    for_trade: bool = False
    want: bool = False
    want_to_play: bool = False
    want_to_buy: bool = False
    wishlist: bool = False
    wishlist_priority: Optional[int] = None
    preordered: bool = False
    last_modified: Optional[str] = None


@dataclass
class CollectionItemStats:
    """Per-item statistics returned when the collection is requested with stats=1."""
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    min_play_time: Optional[int] = None
    max_play_time: Optional[int] = None
    playing_time: Optional[int] = None
    num_owned: Optional[int] = None
    rating: Optional[float] = None  # the user's own rating
    average: Optional[float] = None
    bayes_average: Optional[float] = None


@dataclass
class CollectionItem:
    """One entry of a collection, keyed by (object_id, subtype, coll_id)."""
    object_type: str
    object_id: str
    subtype: str
    coll_id: str
    name: str
    year_published: Optional[int] = None
    image: Optional[str] = None
    thumbnail: Optional[str] = None
    status: CollectionStatus = field(default_factory=CollectionStatus)
    num_plays: int = 0
    comment: Optional[str] = None
    stats: Optional[CollectionItemStats] = None

    @property
    def key(self) -> tuple:
        return (self.object_id, self.subtype, self.coll_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionItem":
        values = dict(data)
        values["status"] = CollectionStatus(**values.get("status", {}))
        stats = values.get("stats")
        values["stats"] = CollectionItemStats(**stats) if stats is not None else None
        return cls(**values)


@dataclass
class Collection:
    """Aggregate: a full collection snapshot as returned to callers."""
    total_items: int = 0
    pub_date: Optional[str] = None
    items: List[CollectionItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Collection":
        return cls(
            total_items=data.get("total_items", 0),
            pub_date=data.get("pub_date"),
            items=[CollectionItem.from_dict(item) for item in data.get("items", [])],
        )

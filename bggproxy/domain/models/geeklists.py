"""Domain models for geeklists (user-curated lists of entities)."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class GeeklistItem:
    """One entry of a geeklist."""
    id: str
    object_type: str
    subtype: str
    object_id: str
    object_name: str
    username: Optional[str] = None
    post_date: Optional[str] = None
    thumbs: int = 0
    image_id: Optional[str] = None
    body: Optional[str] = None


@dataclass
class Geeklist:
    """Entity representing a geeklist with its items."""
    id: str
    title: str
    username: Optional[str] = None
    post_date: Optional[str] = None
    post_date_timestamp: Optional[str] = None
    edit_date: Optional[str] = None
    last_reply_date: Optional[str] = None
    num_items: int = 0
    thumbs: int = 0
    description: Optional[str] = None
    items: List[GeeklistItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Geeklist":
        values = dict(data)
        values["items"] = [GeeklistItem(**item) for item in values.get("items", [])]
        return cls(**values)

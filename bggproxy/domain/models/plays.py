"""Domain models for logged plays."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class PlayItem:
    """The game a play was logged against."""
    name: str
    object_id: str
    object_type: str
    subtypes: List[str] = field(default_factory=list)


@dataclass
class Player:
    """One participant of a play."""
    name: str
    username: Optional[str] = None
    user_id: Optional[str] = None
    start_position: Optional[str] = None
    color: Optional[str] = None
    score: Optional[float] = None
    rating: Optional[float] = None
    new: bool = False
    win: bool = False


@dataclass
class Play:
    """Entity representing a single logged play."""
    id: str
    date: Optional[str]
    item: PlayItem
    quantity: int = 1
    length: int = 0
    incomplete: bool = False
    now_in_stats: bool = False
    location: Optional[str] = None
    players: List[Player] = field(default_factory=list)
    comments: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Play":
        values = dict(data)
        values["item"] = PlayItem(**values["item"])
        values["players"] = [Player(**player) for player in values.get("players", [])]
        return cls(**values)


@dataclass
class PlayPage:
    """One page of a user's play log."""
    username: str
    total: int = 0
    page: int = 1
    plays: List[Play] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayPage":
        return cls(
            username=data["username"],
            total=data.get("total", 0),
            page=data.get("page", 1),
            plays=[Play.from_dict(play) for play in data.get("plays", [])],
        )

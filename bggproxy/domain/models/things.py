"""Domain models for catalog entities ("things").

Includes the `Thing` record, its typed `Link`s to other entities and the
ranking rows carried by the statistics block.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class ThingType(str, Enum):
    """Kinds of catalog entity known upstream."""
    BOARDGAME = "BOARDGAME"
    BOARDGAME_EXPANSION = "BOARDGAME_EXPANSION"
    BOARDGAME_ACCESSORY = "BOARDGAME_ACCESSORY"
    RPG_ITEM = "RPG_ITEM"
    VIDEOGAME = "VIDEOGAME"


class LinkType(str, Enum):
    """Closed set of link categories; anything unrecognized is OTHER."""
    CATEGORY = "CATEGORY"
    MECHANIC = "MECHANIC"
    DESIGNER = "DESIGNER"
    ARTIST = "ARTIST"
    PUBLISHER = "PUBLISHER"
    FAMILY = "FAMILY"
    BASE_GAME = "BASE_GAME"
    EXPANSION = "EXPANSION"
    ACCESSORY = "ACCESSORY"
    RPG = "RPG"
    OTHER = "OTHER"


@dataclass
class Link:
    """A typed reference from a Thing to another upstream entity."""
    type: str  # raw upstream value, e.g. 'boardgamecategory'
    id: str
    value: str
    link_type: LinkType = LinkType.OTHER
    inbound: bool = False

    @property
    def is_expansion_link(self) -> bool:
        return self.link_type is LinkType.EXPANSION

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["link_type"] = self.link_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Link":
        return cls(
            type=data["type"],
            id=data["id"],
            value=data["value"],
            link_type=LinkType(data.get("link_type", LinkType.OTHER.value)),
            inbound=bool(data.get("inbound", False)),
        )


@dataclass
class Rank:
    """One ranking row from the ratings block (e.g. overall, strategy)."""
    type: str
    id: str
    name: str
    friendly_name: str
    value: Optional[int] = None  # None when upstream says "Not Ranked"
    bayes_average: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rank":
        return cls(**data)


@dataclass
class Thing:
    """Entity representing any catalog item (game, expansion, accessory, ...)."""
    id: str
    name: str
    type: ThingType = ThingType.BOARDGAME
    alternate_names: List[str] = field(default_factory=list)
    is_expansion: bool = False
    year_published: Optional[int] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    playing_time: Optional[int] = None
    min_play_time: Optional[int] = None
    max_play_time: Optional[int] = None
    min_age: Optional[int] = None
    description: Optional[str] = None
    image: Optional[str] = None
    thumbnail: Optional[str] = None
    # Statistics (only present when requested with stats=1)
    average: Optional[float] = None
    bayes_average: Optional[float] = None
    users_rated: Optional[int] = None
    users_owned: Optional[int] = None
    users_wanting: Optional[int] = None
    users_wishing: Optional[int] = None
    num_comments: Optional[int] = None
    num_weights: Optional[int] = None
    average_weight: Optional[float] = None
    rank: Optional[int] = None  # position on the hot list
    ranks: List[Rank] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    def links_of(self, link_type: LinkType) -> List[Link]:
        """Returns the links of a single category, in upstream order."""
        return [link for link in self.links if link.link_type is link_type]

    @property
    def base_game_ids(self) -> List[str]:
        """Ids of the base game(s) this expansion belongs to."""
        if not self.is_expansion:
            return []
        ids = [link.id for link in self.links_of(LinkType.BASE_GAME)]
        # Upstream models the expansion -> base relation as an inbound expansion link.
        ids.extend(link.id for link in self.links_of(LinkType.EXPANSION) if link.inbound)
        return ids

    @property
    def expansion_ids(self) -> List[str]:
        """Ids of the expansions published for this base game."""
        if self.is_expansion:
            return []
        return [link.id for link in self.links_of(LinkType.EXPANSION) if not link.inbound]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["links"] = [link.to_dict() for link in self.links]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Thing":
        values = dict(data)
        values["type"] = ThingType(values.get("type", ThingType.BOARDGAME.value))
        values["links"] = [Link.from_dict(item) for item in values.get("links", [])]
        values["ranks"] = [Rank.from_dict(item) for item in values.get("ranks", [])]
        return cls(**values)

"""Domain models (records rebuilt from upstream responses)."""

from .things import Thing, ThingType, Link, LinkType, Rank
from .users import User
from .collection import Collection, CollectionItem, CollectionStatus, CollectionItemStats
from .plays import Play, PlayItem, PlayPage, Player
from .geeklists import Geeklist, GeeklistItem

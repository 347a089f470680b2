"""Maps generic XML trees from the upstream API onto domain records.

Every method is pure: the same tree always yields an equal record. Missing
or malformed optional fields never fail the enclosing record; they come out
absent (None) unless the field has a fixed default.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from bggproxy.domain.models import (
    Collection,
    CollectionItem,
    CollectionItemStats,
    CollectionStatus,
    Geeklist,
    GeeklistItem,
    Link,
    LinkType,
    Play,
    PlayItem,
    PlayPage,
    Player,
    Rank,
    Thing,
    ThingType,
    User,
)
from bggproxy.domain.models.common import RawPayload
from bggproxy.infrastructure.xml.tree import (
    as_array,
    as_map,
    as_scalar,
    child,
    is_empty,
    text_of,
)

logger = logging.getLogger(__name__)

LINK_TYPE_MAP: Dict[str, LinkType] = {
    "boardgamecategory": LinkType.CATEGORY,
    "boardgamemechanic": LinkType.MECHANIC,
    "boardgamedesigner": LinkType.DESIGNER,
    "boardgameartist": LinkType.ARTIST,
    "boardgamepublisher": LinkType.PUBLISHER,
    "boardgamefamily": LinkType.FAMILY,
    "boardgamebase": LinkType.BASE_GAME,
    "boardgameexpansion": LinkType.EXPANSION,
    "boardgameaccessory": LinkType.ACCESSORY,
    "rpgitem": LinkType.RPG,
    "rpgperiodical": LinkType.RPG,
}

THING_TYPE_MAP: Dict[str, ThingType] = {
    "boardgame": ThingType.BOARDGAME,
    "boardgameexpansion": ThingType.BOARDGAME_EXPANSION,
    "boardgameaccessory": ThingType.BOARDGAME_ACCESSORY,
    "rpgitem": ThingType.RPG_ITEM,
    "videogame": ThingType.VIDEOGAME,
}

EXPANSION_TYPE = "boardgameexpansion"
TRUE_VALUES = frozenset({"1", "true"})


# --- Lenient scalar parsing ---

def parse_int(value: Any) -> Optional[int]:
    """Parses an integer, returning None for missing, empty or non-numeric input.

    Accepts numeric strings with a fractional part ("60.0") by truncating.
    """
    raw = as_scalar(value)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return None


def parse_float(value: Any) -> Optional[float]:
    """Parses a float, returning None for missing, empty or non-numeric input."""
    raw = as_scalar(value)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    try:
        result = float(raw)
    except ValueError:
        return None
    # 'nan' and 'inf' parse but are not numbers upstream would send
    if result != result or result in (float("inf"), float("-inf")):
        return None
    return result


def parse_bool(value: Any) -> bool:
    raw = as_scalar(value)
    return raw is not None and raw.strip().lower() in TRUE_VALUES


def _optional_text(value: Any) -> Optional[str]:
    raw = as_scalar(value)
    if raw is None or raw == "":
        return None
    return raw


def _name_variants(names: Any) -> List[Tuple[str, bool]]:
    """Flattens every shape of the name field into (value, is_primary) pairs."""
    variants = []
    for variant in as_array(names):
        value = as_scalar(variant)
        if value is None:
            continue
        is_primary = isinstance(variant, dict) and as_scalar(variant.get("type")) == "primary"
        variants.append((value, is_primary))
    return variants


def resolve_names(names: Any) -> Tuple[str, List[str]]:
    """Picks the display name and the alternates out of the name variants.

    The primary-flagged variant wins, otherwise the first one, otherwise "".
    Alternates are the remaining variants in upstream order.
    """
    variants = _name_variants(names)
    if not variants:
        return "", []
    chosen = next((i for i, (_, primary) in enumerate(variants) if primary), 0)
    alternates = [value for i, (value, _) in enumerate(variants) if i != chosen]
    return variants[chosen][0], alternates


class XmlNormalizer:
    """Stateless transformer from generic XML trees to domain records."""

    # --- Things ---

    def normalize_things(self, payload: RawPayload) -> List[Thing]:
        """Normalizes every `item` of a /thing, /search or /hot response."""
        if is_empty(payload):
            return []
        return [self.normalize_thing(item) for item in as_array(child(payload, "item"))]

    def normalize_first_thing(self, payload: RawPayload) -> Optional[Thing]:
        things = self.normalize_things(payload)
        return things[0] if things else None

    def normalize_thing(self, item: RawPayload) -> Thing:
        raw_type = as_scalar(child(item, "type")) or ""
        name, alternate_names = resolve_names(child(item, "name"))
        ratings = child(child(item, "statistics"), "ratings")

        return Thing(
            id=as_scalar(child(item, "id")) or "",
            name=name,
            type=THING_TYPE_MAP.get(raw_type, ThingType.BOARDGAME),
            alternate_names=alternate_names,
            is_expansion=raw_type == EXPANSION_TYPE,
            year_published=parse_int(child(item, "yearpublished")),
            min_players=parse_int(child(item, "minplayers")),
            max_players=parse_int(child(item, "maxplayers")),
            playing_time=parse_int(child(item, "playingtime")),
            min_play_time=parse_int(child(item, "minplaytime")),
            max_play_time=parse_int(child(item, "maxplaytime")),
            min_age=parse_int(child(item, "minage")),
            description=text_of(item, "description"),
            image=text_of(item, "image"),
            thumbnail=text_of(item, "thumbnail"),
            average=parse_float(child(ratings, "average")),
            bayes_average=parse_float(child(ratings, "bayesaverage")),
            users_rated=parse_int(child(ratings, "usersrated")),
            users_owned=parse_int(child(ratings, "owned")),
            users_wanting=parse_int(child(ratings, "wanting")),
            users_wishing=parse_int(child(ratings, "wishing")),
            num_comments=parse_int(child(ratings, "numcomments")),
            num_weights=parse_int(child(ratings, "numweights")),
            average_weight=parse_float(child(ratings, "averageweight")),
            rank=parse_int(child(item, "rank")),
            ranks=self._normalize_ranks(child(child(ratings, "ranks"), "rank")),
            links=self.normalize_links(child(item, "link")),
        )

    def normalize_links(self, links: Any) -> List[Link]:
        normalized = []
        for link in as_array(links):
            if not isinstance(link, dict):
                continue
            raw_type = as_scalar(link.get("type")) or ""
            normalized.append(Link(
                type=raw_type,
                id=as_scalar(link.get("id")) or "",
                value=as_scalar(link.get("value")) or "",
                link_type=LINK_TYPE_MAP.get(raw_type, LinkType.OTHER),
                inbound=parse_bool(link.get("inbound")),
            ))
        return normalized

    def _normalize_ranks(self, ranks: Any) -> List[Rank]:
        normalized = []
        for rank in as_array(ranks):
            if not isinstance(rank, dict):
                continue
            normalized.append(Rank(
                type=as_scalar(rank.get("type")) or "",
                id=as_scalar(rank.get("id")) or "",
                name=as_scalar(rank.get("name")) or "",
                friendly_name=as_scalar(rank.get("friendlyname")) or "",
                # "Not Ranked" is not numeric and comes out as None
                value=parse_int(rank.get("value")),
                bayes_average=parse_float(rank.get("bayesaverage")),
            ))
        return normalized

    # --- Users ---

    def normalize_user(self, payload: RawPayload) -> Optional[User]:
        """Normalizes a /user response; unknown users come back with an empty id."""
        user_id = as_scalar(child(payload, "id"))
        username = as_scalar(child(payload, "name"))
        if not user_id or not username:
            return None
        return User(
            id=user_id,
            username=username,
            first_name=text_of(payload, "firstname"),
            last_name=text_of(payload, "lastname"),
            avatar_link=text_of(payload, "avatarlink"),
            year_registered=parse_int(child(payload, "yearregistered")),
            last_login=text_of(payload, "lastlogin"),
            state_or_province=text_of(payload, "stateorprovince"),
            country=text_of(payload, "country"),
            web_address=text_of(payload, "webaddress"),
            trade_rating=parse_int(child(payload, "traderating")),
            support_years=parse_int(child(payload, "supportyears")) or 0,
            designer_id=text_of(payload, "designerid"),
            publisher_id=text_of(payload, "publisherid"),
        )

    # --- Collections ---

    def normalize_collection_items(self, payload: RawPayload) -> List[CollectionItem]:
        if is_empty(payload):
            return []
        return [self.normalize_collection_item(item) for item in as_array(child(payload, "item"))]

    def normalize_collection(self, payload: RawPayload) -> Collection:
        if is_empty(payload):
            return Collection()
        return Collection(
            total_items=parse_int(child(payload, "totalitems")) or 0,
            pub_date=text_of(payload, "pubdate"),
            items=self.normalize_collection_items(payload),
        )

    def normalize_collection_item(self, item: RawPayload) -> CollectionItem:
        name, _ = resolve_names(child(item, "name"))
        status = as_map(child(item, "status"))
        stats_node = child(item, "stats")

        return CollectionItem(
            object_type=as_scalar(child(item, "objecttype")) or "",
            object_id=as_scalar(child(item, "objectid")) or "",
            subtype=as_scalar(child(item, "subtype")) or "",
            coll_id=as_scalar(child(item, "collid")) or "",
            name=name,
            year_published=parse_int(child(item, "yearpublished")),
            image=text_of(item, "image"),
            thumbnail=text_of(item, "thumbnail"),
            status=CollectionStatus(
                own=parse_bool(status.get("own")),
                prev_owned=parse_bool(status.get("prevowned")),
                for_trade=parse_bool(status.get("fortrade")),
                want=parse_bool(status.get("want")),
                want_to_play=parse_bool(status.get("wanttoplay")),
                want_to_buy=parse_bool(status.get("wanttobuy")),
                wishlist=parse_bool(status.get("wishlist")),
                wishlist_priority=parse_int(status.get("wishlistpriority")),
                preordered=parse_bool(status.get("preordered")),
                last_modified=_optional_text(status.get("lastmodified")),
            ),
            num_plays=parse_int(child(item, "numplays")) or 0,
            comment=text_of(item, "comment"),
            stats=self._normalize_item_stats(stats_node) if not is_empty(stats_node) else None,
        )

    def _normalize_item_stats(self, stats: Any) -> CollectionItemStats:
        rating = child(stats, "rating")
        return CollectionItemStats(
            min_players=parse_int(child(stats, "minplayers")),
            max_players=parse_int(child(stats, "maxplayers")),
            min_play_time=parse_int(child(stats, "minplaytime")),
            max_play_time=parse_int(child(stats, "maxplaytime")),
            playing_time=parse_int(child(stats, "playingtime")),
            num_owned=parse_int(child(stats, "numowned")),
            # The user's own rating is "N/A" when unrated
            rating=parse_float(rating),
            average=parse_float(child(rating, "average")),
            bayes_average=parse_float(child(rating, "bayesaverage")),
        )

    # --- Plays ---

    def normalize_plays(self, payload: RawPayload, username: str = "") -> PlayPage:
        """Normalizes a /plays response into one page of plays."""
        if is_empty(payload):
            return PlayPage(username=username)
        return PlayPage(
            username=as_scalar(child(payload, "username")) or username,
            total=parse_int(child(payload, "total")) or 0,
            page=parse_int(child(payload, "page")) or 1,
            plays=[self.normalize_play(play) for play in as_array(child(payload, "play"))],
        )

    def normalize_play(self, play: RawPayload) -> Play:
        item = child(play, "item")
        subtypes = [
            value
            for value in (as_scalar(s) for s in as_array(child(child(item, "subtypes"), "subtype")))
            if value
        ]
        return Play(
            id=as_scalar(child(play, "id")) or "",
            date=text_of(play, "date"),
            item=PlayItem(
                name=as_scalar(child(item, "name")) or "",
                object_id=as_scalar(child(item, "objectid")) or "",
                object_type=as_scalar(child(item, "objecttype")) or "",
                subtypes=subtypes,
            ),
            quantity=parse_int(child(play, "quantity")) or 1,
            length=parse_int(child(play, "length")) or 0,
            incomplete=parse_bool(child(play, "incomplete")),
            now_in_stats=parse_bool(child(play, "nowinstats")),
            location=text_of(play, "location"),
            players=[
                self._normalize_player(player)
                for player in as_array(child(child(play, "players"), "player"))
                if isinstance(player, dict)
            ],
            comments=text_of(play, "comments"),
        )

    def _normalize_player(self, player: Dict[str, Any]) -> Player:
        return Player(
            name=as_scalar(player.get("name")) or "",
            username=_optional_text(player.get("username")),
            user_id=_optional_text(player.get("userid")),
            start_position=_optional_text(player.get("startposition")),
            color=_optional_text(player.get("color")),
            score=parse_float(player.get("score")),
            rating=parse_float(player.get("rating")),
            new=parse_bool(player.get("new")),
            win=parse_bool(player.get("win")),
        )

    # --- Geeklists ---

    def normalize_geeklist(self, payload: RawPayload) -> Optional[Geeklist]:
        if is_empty(payload) or not as_scalar(child(payload, "id")):
            return None
        return Geeklist(
            id=as_scalar(child(payload, "id")) or "",
            title=text_of(payload, "title") or "",
            username=text_of(payload, "username"),
            post_date=text_of(payload, "postdate"),
            post_date_timestamp=text_of(payload, "postdate_timestamp"),
            edit_date=text_of(payload, "editdate"),
            last_reply_date=text_of(payload, "lastreplydate"),
            num_items=parse_int(child(payload, "numitems")) or 0,
            thumbs=parse_int(child(payload, "thumbs")) or 0,
            description=text_of(payload, "description"),
            items=[
                self._normalize_geeklist_item(item)
                for item in as_array(child(payload, "item"))
                if isinstance(item, dict)
            ],
        )

    def normalize_geeklists(self, payload: RawPayload) -> List[Geeklist]:
        if is_empty(payload):
            return []
        geeklists = []
        for node in as_array(child(payload, "geeklist")):
            geeklist = self.normalize_geeklist(node)
            if geeklist is not None:
                geeklists.append(geeklist)
        return geeklists

    def _normalize_geeklist_item(self, item: Dict[str, Any]) -> GeeklistItem:
        return GeeklistItem(
            id=as_scalar(item.get("id")) or "",
            object_type=as_scalar(item.get("objecttype")) or "",
            subtype=as_scalar(item.get("subtype")) or "",
            object_id=as_scalar(item.get("objectid")) or "",
            object_name=as_scalar(item.get("objectname")) or "",
            username=_optional_text(item.get("username")),
            post_date=_optional_text(item.get("postdate")),
            thumbs=parse_int(item.get("thumbs")) or 0,
            image_id=_optional_text(item.get("imageid")),
            body=text_of(item, "body"),
        )

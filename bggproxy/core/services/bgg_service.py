"""Core service exposing one operation per upstream entity.

Every operation is cache-aside: the two-level cache is consulted first, the
upstream is only called on a miss, and fresh results are written through to
both tiers with the entity's TTL policy. Cache trouble never fails an
operation; upstream errors propagate unchanged.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar
from urllib.parse import quote

# Domain Layer Imports
from bggproxy.domain.interfaces.cache import CacheService
from bggproxy.domain.interfaces.upstream import UpstreamFetcher
from bggproxy.domain.models import Collection, Geeklist, PlayPage, Thing, User
from bggproxy.domain.models.common import (
    CacheKey,
    EntityType,
    GeeklistId,
    PlayFilters,
    ThingId,
    UpstreamPath,
    Username,
)

# Core Layer Imports
from bggproxy.core.services.collection_assembler import CollectionAssembler

# Infrastructure Layer Imports
from bggproxy.infrastructure.cache import keys
from bggproxy.infrastructure.cache.ttl_policy import TtlPolicyTable
from bggproxy.infrastructure.normalization.normalizer import XmlNormalizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upstream rejects /thing requests with more ids than this
MAX_THINGS_PER_REQUEST = 20


def _encode_things(things: List[Thing]) -> List[Dict[str, Any]]:
    return [thing.to_dict() for thing in things]


def _decode_things(data: List[Dict[str, Any]]) -> List[Thing]:
    return [Thing.from_dict(item) for item in data]


def _encode_geeklists(geeklists: List[Geeklist]) -> List[Dict[str, Any]]:
    return [geeklist.to_dict() for geeklist in geeklists]


def _decode_geeklists(data: List[Dict[str, Any]]) -> List[Geeklist]:
    return [Geeklist.from_dict(item) for item in data]


class BggService:
    """Facade over fetcher, normalizer, assembler and cache."""

    def __init__(
        self,
        fetcher: UpstreamFetcher,
        cache: CacheService,
        normalizer: Optional[XmlNormalizer] = None,
        ttl_table: Optional[TtlPolicyTable] = None,
        assembler: Optional[CollectionAssembler] = None,
    ):
        """Initializes the BggService with its dependencies."""
        self.fetcher = fetcher
        self.cache = cache
        self.normalizer = normalizer or XmlNormalizer()
        self.ttl_table = ttl_table or TtlPolicyTable()
        self.assembler = assembler or CollectionAssembler(fetcher, self.normalizer)
        logger.info(f"BggService initialized with fetcher: {fetcher.__class__.__name__}")

    async def _cached(
        self,
        key: CacheKey,
        entity: EntityType,
        load: Callable[[], Awaitable[Optional[T]]],
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
    ) -> Optional[T]:
        """Cache-aside lookup shared by every operation."""
        policy = self.ttl_table.for_entity(entity)
        cached = await self.cache.get(key, ttl=policy)
        if cached is not None:
            try:
                return decode(cached)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding undecodable cache entry for {key}: {e}")
                await self.cache.delete(key)

        result = await load()
        if result is not None:
            await self.cache.set(key, encode(result), ttl=policy)
        return result

    # --- Things ---

    async def get_thing(self, thing_id: ThingId) -> Optional[Thing]:
        async def load() -> Optional[Thing]:
            payload = await self.fetcher.fetch("/thing", {"id": thing_id, "stats": 1})
            return self.normalizer.normalize_first_thing(payload)

        return await self._cached(
            keys.thing_key(thing_id), EntityType.THING, load, Thing.to_dict, Thing.from_dict
        )

    async def get_things(self, thing_ids: Sequence[ThingId]) -> List[Thing]:
        """Returns the requested things in request order, skipping unknown ids.

        Ids already cached are served from the cache; the rest are fetched in
        batches of at most MAX_THINGS_PER_REQUEST and cached one by one.
        """
        stripped = (ThingId(str(i).strip()) for i in thing_ids)
        unique_ids = list(dict.fromkeys(i for i in stripped if i))
        policy = self.ttl_table.for_entity(EntityType.THING)
        found: Dict[str, Thing] = {}
        missing: List[str] = []

        for thing_id in unique_ids:
            cached = await self.cache.get(keys.thing_key(thing_id), ttl=policy)
            thing = None
            if cached is not None:
                try:
                    thing = Thing.from_dict(cached)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Discarding undecodable cache entry for thing {thing_id}: {e}")
            if thing is None:
                missing.append(thing_id)
            else:
                found[thing_id] = thing

        for start in range(0, len(missing), MAX_THINGS_PER_REQUEST):
            batch = missing[start:start + MAX_THINGS_PER_REQUEST]
            payload = await self.fetcher.fetch("/thing", {"id": ",".join(batch), "stats": 1})
            for thing in self.normalizer.normalize_things(payload):
                found[thing.id] = thing
                await self.cache.set(keys.thing_key(thing.id), thing.to_dict(), ttl=policy)

        logger.debug(
            f"get_things: {len(unique_ids)} requested, {len(unique_ids) - len(missing)} from cache, "
            f"{len(missing)} fetched"
        )
        return [found[thing_id] for thing_id in unique_ids if thing_id in found]

    async def search_things(
        self, query: str, thing_type: Optional[str] = None, exact: bool = False
    ) -> List[Thing]:
        async def load() -> List[Thing]:
            params: Dict[str, Any] = {"query": query, "type": thing_type}
            if exact:
                params["exact"] = 1
            payload = await self.fetcher.fetch("/search", params)
            return self.normalizer.normalize_things(payload)

        return await self._cached(
            keys.search_key(query, thing_type, exact), EntityType.SEARCH, load,
            _encode_things, _decode_things,
        ) or []

    async def get_hot_items(self, item_type: Optional[str] = None) -> List[Thing]:
        async def load() -> List[Thing]:
            payload = await self.fetcher.fetch("/hot", {"type": item_type})
            return self.normalizer.normalize_things(payload)

        return await self._cached(
            keys.hot_key(item_type), EntityType.HOT_ITEMS, load, _encode_things, _decode_things
        ) or []

    # --- Users ---

    async def get_user(self, username: Username) -> Optional[User]:
        async def load() -> Optional[User]:
            payload = await self.fetcher.fetch("/user", {"name": username})
            return self.normalizer.normalize_user(payload)

        return await self._cached(
            keys.user_key(username), EntityType.USER, load, User.to_dict, User.from_dict
        )

    async def get_user_collection(self, username: Username, subtype: Optional[str] = None) -> Optional[Collection]:
        async def load() -> Collection:
            return await self.assembler.get_collection(username, subtype)

        return await self._cached(
            keys.collection_key(username, subtype), EntityType.COLLECTION, load,
            Collection.to_dict, Collection.from_dict,
        )

    async def get_user_plays(self, username: Username, filters: Optional[PlayFilters] = None) -> PlayPage:
        filters = filters or {}

        async def load() -> PlayPage:
            params: Dict[str, Any] = {"username": username}
            params.update({k: filters.get(k) for k in ("id", "mindate", "maxdate", "page")})
            payload = await self.fetcher.fetch("/plays", params)
            return self.normalizer.normalize_plays(payload, username=username)

        page = await self._cached(
            keys.plays_key(username, dict(filters)), EntityType.PLAYS, load,
            PlayPage.to_dict, PlayPage.from_dict,
        )
        return page if page is not None else PlayPage(username=username)

    # --- Geeklists ---

    async def get_geeklist(self, geeklist_id: GeeklistId) -> Optional[Geeklist]:
        async def load() -> Optional[Geeklist]:
            payload = await self.fetcher.fetch(UpstreamPath(f"/geeklist/{quote(str(geeklist_id), safe='')}"))
            return self.normalizer.normalize_geeklist(payload)

        return await self._cached(
            keys.geeklist_key(geeklist_id), EntityType.GEEKLIST, load,
            Geeklist.to_dict, Geeklist.from_dict,
        )

    async def get_geeklists(self, username: Username, page: int = 1) -> List[Geeklist]:
        async def load() -> List[Geeklist]:
            payload = await self.fetcher.fetch(
                UpstreamPath(f"/geeklists/user/{quote(username, safe='')}"), {"page": page}
            )
            return self.normalizer.normalize_geeklists(payload)

        return await self._cached(
            keys.geeklists_key(username, page), EntityType.GEEKLISTS, load,
            _encode_geeklists, _decode_geeklists,
        ) or []

    # --- Lifecycle ---

    async def clear_cache(self, level: str = 'all') -> None:
        await self.cache.clear(level)

    async def close(self) -> None:
        await self.fetcher.close()
        close_cache = getattr(self.cache, "close", None)
        if close_cache is not None:
            await close_cache()

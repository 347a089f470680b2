"""Core service assembling a consistent view of a user's collection.

The upstream collection endpoint drops expansions when asked for the
"boardgame" subtype. Board-game requests are therefore split into two
filtered fetches (base games, then expansions) and merged back together.
If either half fails, one unfiltered fetch is returned instead.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

# Domain Layer Imports
from bggproxy.domain.events.api_events import CollectionFallbackTriggered, dispatch_event
from bggproxy.domain.interfaces.upstream import UpstreamFetcher
from bggproxy.domain.models import Collection
from bggproxy.domain.models.common import UpstreamPath, Username

# Infrastructure Layer Imports
from bggproxy.infrastructure.normalization.normalizer import XmlNormalizer

logger = logging.getLogger(__name__)

COLLECTION_PATH = UpstreamPath("/collection")
BOARDGAME_SUBTYPE = "boardgame"
EXPANSION_SUBTYPE = "boardgameexpansion"


class CollectionAssembler:
    """Fetches and merges collection snapshots."""

    def __init__(self, fetcher: UpstreamFetcher, normalizer: XmlNormalizer):
        self.fetcher = fetcher
        self.normalizer = normalizer

    async def get_collection(self, username: Username, subtype: Optional[str] = None) -> Collection:
        """Returns the collection of `username`, optionally restricted to a subtype.

        Args:
            username: Upstream account name.
            subtype: e.g. 'boardgame' (case-insensitive) or 'rpgitem'; None for
                everything.

        Raises:
            UpstreamError: If the direct fetch, or the fallback fetch, fails.
        """
        if subtype and subtype.lower() == BOARDGAME_SUBTYPE:
            return await self._get_split_collection(username)
        params = self._params(username)
        if subtype:
            params["subtype"] = subtype
        payload = await self.fetcher.fetch(COLLECTION_PATH, params)
        return self.normalizer.normalize_collection(payload)

    @staticmethod
    def _params(username: Username) -> Dict[str, Any]:
        return {"username": username, "stats": 1}

    async def _get_split_collection(self, username: Username) -> Collection:
        boardgame_params = self._params(username)
        boardgame_params["excludesubtype"] = EXPANSION_SUBTYPE
        expansion_params = self._params(username)
        expansion_params["subtype"] = EXPANSION_SUBTYPE

        # Both halves run to completion so no fetch is left dangling on failure.
        results = await asyncio.gather(
            self.fetcher.fetch(COLLECTION_PATH, boardgame_params),
            self.fetcher.fetch(COLLECTION_PATH, expansion_params),
            return_exceptions=True,
        )
        failure = next((r for r in results if isinstance(r, BaseException)), None)
        if failure is not None:
            if not isinstance(failure, Exception):
                raise failure
            logger.warning(
                f"Split collection fetch for '{username}' failed ({type(failure).__name__}: {failure}). "
                "Falling back to a single unfiltered fetch."
            )
            dispatch_event(CollectionFallbackTriggered(username=username, reason=f"{type(failure).__name__}: {failure}"))
            return await self._get_unfiltered_collection(username)

        boardgames_payload, expansions_payload = results
        boardgames = self.normalizer.normalize_collection(boardgames_payload)
        expansions = self.normalizer.normalize_collection(expansions_payload)
        merged = Collection(
            total_items=boardgames.total_items + expansions.total_items,
            pub_date=boardgames.pub_date or expansions.pub_date,
            items=boardgames.items + expansions.items,
        )
        logger.debug(
            f"Merged collection for '{username}': {len(boardgames.items)} boardgames + "
            f"{len(expansions.items)} expansions"
        )
        return merged

    async def _get_unfiltered_collection(self, username: Username) -> Collection:
        payload = await self.fetcher.fetch(COLLECTION_PATH, self._params(username))
        return self.normalizer.normalize_collection(payload)

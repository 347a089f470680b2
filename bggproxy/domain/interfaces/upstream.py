"""Interface for fetching raw payloads from the upstream XML API.

Application services depend on this contract rather than on the HTTP
client, so tests can substitute scripted fetchers.
"""

import abc
from typing import Any, Mapping, Optional

from ..models.common import RawPayload, UpstreamPath


class UpstreamFetcher(abc.ABC):
    """Abstract Base Class for rate-limited upstream access."""

    @abc.abstractmethod
    async def fetch(self, path: UpstreamPath, params: Optional[Mapping[str, Any]] = None) -> RawPayload:
        """Fetches a path relative to the API base URL.

        Args:
            path: e.g. '/thing' or '/geeklist/123'.
            params: Query parameters; None values are omitted.

        Returns:
            The decoded generic XML tree.

        Raises:
            RateLimited: Throttling persisted through every retry.
            NetworkTransient: Network failures persisted through every retry.
            ServerError: Non-retryable HTTP status.
            ParseError: Body was not valid XML.
        """
        pass

    async def close(self) -> None:
        """Releases the underlying connection pool."""
        return None

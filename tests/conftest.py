import pytest
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from xml.sax.saxutils import escape

import httpx
from typer.testing import CliRunner

from bggproxy.domain.interfaces.storage import StorageBackend
from bggproxy.domain.interfaces.upstream import UpstreamFetcher
from bggproxy.infrastructure.config.settings import clear_test_config
from bggproxy.infrastructure.upstream.bgg_client import BggFetcher
from bggproxy.infrastructure.xml.tree import parse_xml


class FakeClock:
    """Monotonic clock whose `sleep` advances time instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedFetcher(UpstreamFetcher):
    """Records every fetch and answers through a handler(path, params)."""

    def __init__(self, handler: Callable[[str, Dict[str, Any]], Any]):
        self.handler = handler
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    async def fetch(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        query = dict(params or {})
        self.calls.append((path, query))
        result = self.handler(path, query)
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True


class DictStorage(StorageBackend):
    """In-memory StorageBackend recording the TTL of each write."""

    name = "dict"

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    async def store(self, key, value, ttl_seconds=None):
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def retrieve(self, key):
        return self.data.get(key)

    async def remove(self, key):
        self.data.pop(key, None)

    async def clear(self):
        self.data.clear()


class FailingStorage(StorageBackend):
    """StorageBackend that throws on every call."""

    name = "failing"

    async def store(self, key, value, ttl_seconds=None):
        raise RuntimeError("storage is down")

    async def retrieve(self, key):
        raise RuntimeError("storage is down")

    async def remove(self, key):
        raise RuntimeError("storage is down")

    async def clear(self):
        raise RuntimeError("storage is down")


# --- XML builders ---

def thing_xml(thing_id: str, name: str = "Game", thing_type: str = "boardgame", extra: str = "") -> str:
    return (
        f'<item type="{thing_type}" id="{thing_id}">'
        f'<name type="primary" sortindex="1" value="{escape(name)}"/>'
        f"{extra}</item>"
    )


def things_document(items: List[str]) -> str:
    return f'<items termsofuse="https://boardgamegeek.com/xmlapi/termsofuse">{"".join(items)}</items>'


def collection_item_xml(object_id: str, subtype: str = "boardgame", name: Optional[str] = None) -> str:
    return (
        f'<item objecttype="thing" objectid="{object_id}" subtype="{subtype}" collid="c{object_id}">'
        f'<name sortindex="1">{escape(name or "Item " + object_id)}</name>'
        f"<yearpublished>2010</yearpublished>"
        f'<status own="1" prevowned="0" fortrade="0" want="0" wanttoplay="0" wanttobuy="0" '
        f'wishlist="0" preordered="0" lastmodified="2024-01-01 10:00:00"/>'
        f"<numplays>2</numplays>"
        f"</item>"
    )


def collection_document(items: List[str], total: Optional[int] = None, pubdate: str = "Mon, 01 Jan 2024 10:00:00 +0000") -> str:
    total_items = len(items) if total is None else total
    return (
        f'<items totalitems="{total_items}" termsofuse="https://boardgamegeek.com/xmlapi/termsofuse" '
        f'pubdate="{pubdate}">{"".join(items)}</items>'
    )


def collection_payload(count: int, subtype: str = "boardgame", start: int = 1, pubdate: str = "Mon, 01 Jan 2024 10:00:00 +0000"):
    items = [collection_item_xml(str(i), subtype) for i in range(start, start + count)]
    return parse_xml(collection_document(items, pubdate=pubdate))


# --- Fixtures ---

@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def scripted_fetcher():
    """Factory: scripted_fetcher(handler) -> ScriptedFetcher."""
    return ScriptedFetcher


@pytest.fixture
def dict_storage():
    return DictStorage()


@pytest.fixture
def failing_storage():
    return FailingStorage()


@pytest.fixture
def mock_transport_fetcher(fake_clock):
    """Factory building a BggFetcher whose HTTP layer is an httpx.MockTransport.

    Every request is recorded together with the fake clock time it was sent at.
    """
    def build(handler: Callable[[httpx.Request], httpx.Response], min_spacing: float = 5.0, **kwargs):
        requests: List[Tuple[float, httpx.Request]] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append((fake_clock.now, request))
            return handler(request)

        fetcher = BggFetcher.create(
            "https://bgg.example/xmlapi2",
            min_spacing=min_spacing,
            transport=httpx.MockTransport(recording_handler),
            clock=fake_clock,
            sleep=fake_clock.sleep,
            **kwargs,
        )
        return fetcher, requests

    return build


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_test_config():
    """Keeps configuration overrides from leaking between tests."""
    yield
    clear_test_config()

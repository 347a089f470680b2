import httpx
import pytest

from bggproxy.core.exceptions import NetworkTransient, ParseError, RateLimited, ServerError
from bggproxy.core.services.bgg_service import BggService
from bggproxy.infrastructure.cache.caching_service import CachingServiceImpl
from bggproxy.infrastructure.upstream.bgg_client import USER_AGENT, build_async_client

THING_BODY = '<items><item type="boardgame" id="13"><name type="primary" value="CATAN"/></item></items>'


def scripted(responses):
    """Handler answering with the given responses (or raising exceptions) in order."""
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        status, body = item
        return httpx.Response(status, text=body)

    return handler


@pytest.mark.asyncio
async def test_fetch_decodes_xml_and_builds_url(mock_transport_fetcher):
    fetcher, requests = mock_transport_fetcher(scripted([(200, THING_BODY)]))

    payload = await fetcher.fetch("/thing", {"id": "13", "stats": 1, "type": None})

    assert payload["item"]["id"] == "13"
    (_, request), = requests
    assert request.url.path == "/xmlapi2/thing"
    assert dict(request.url.params) == {"id": "13", "stats": "1"}
    assert request.headers["User-Agent"] == USER_AGENT
    await fetcher.close()


@pytest.mark.asyncio
async def test_503_503_200_succeeds_after_two_backoffs(mock_transport_fetcher, fake_clock):
    fetcher, requests = mock_transport_fetcher(
        scripted([(503, ""), (503, ""), (200, THING_BODY)]), min_spacing=0.0
    )

    payload = await fetcher.fetch("/thing", {"id": "13"})

    assert payload["item"]["id"] == "13"
    assert len(requests) == 3
    assert fake_clock.sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_404_is_attempted_exactly_once(mock_transport_fetcher, fake_clock):
    fetcher, requests = mock_transport_fetcher(scripted([(404, "Not Found")]))

    with pytest.raises(ServerError) as exc_info:
        await fetcher.fetch("/thing", {"id": "0"})

    assert exc_info.value.status_code == 404
    assert exc_info.value.retryable_later is False
    assert len(requests) == 1
    assert fake_clock.sleeps == []


@pytest.mark.asyncio
async def test_500_is_not_retried(mock_transport_fetcher):
    fetcher, requests = mock_transport_fetcher(scripted([(500, "")]))

    with pytest.raises(ServerError):
        await fetcher.fetch("/user", {"name": "alice"})

    assert len(requests) == 1


@pytest.mark.parametrize("status", [429, 502, 503])
@pytest.mark.asyncio
async def test_persistent_throttling_raises_rate_limited(mock_transport_fetcher, status):
    fetcher, requests = mock_transport_fetcher(scripted([(status, "")] * 4), min_spacing=0.0)

    with pytest.raises(RateLimited) as exc_info:
        await fetcher.fetch("/collection", {"username": "alice"})

    assert "try again in a few seconds" in str(exc_info.value)
    assert len(requests) == 4


@pytest.mark.asyncio
async def test_timeouts_are_retried_then_surface_as_network_transient(mock_transport_fetcher, fake_clock):
    timeout = httpx.ReadTimeout("timed out")
    fetcher, requests = mock_transport_fetcher(scripted([timeout] * 4), min_spacing=0.0)

    with pytest.raises(NetworkTransient):
        await fetcher.fetch("/thing", {"id": "13"})

    assert len(requests) == 4
    assert fake_clock.sleeps == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_connection_errors_recover(mock_transport_fetcher):
    fetcher, requests = mock_transport_fetcher(
        scripted([httpx.ConnectError("connection reset"), (200, THING_BODY)]), min_spacing=0.0
    )

    payload = await fetcher.fetch("/thing", {"id": "13"})

    assert payload["item"]["id"] == "13"
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_malformed_body_raises_parse_error_without_retry(mock_transport_fetcher):
    fetcher, requests = mock_transport_fetcher(scripted([(200, "<items><item>")]))

    with pytest.raises(ParseError):
        await fetcher.fetch("/thing", {"id": "13"})

    assert len(requests) == 1


@pytest.mark.asyncio
async def test_empty_body_is_no_result_rather_than_an_error(mock_transport_fetcher):
    fetcher, requests = mock_transport_fetcher(scripted([(200, ""), (200, ""), (200, "")]), min_spacing=0.0)
    service = BggService(fetcher, CachingServiceImpl())

    assert await fetcher.fetch("/thing", {"id": "13"}) == ""
    assert await service.get_thing("13") is None
    assert await service.get_things(["1", "2"]) == []
    assert len(requests) == 3


@pytest.mark.asyncio
async def test_sequential_fetches_are_spaced_by_the_watermark(mock_transport_fetcher):
    fetcher, requests = mock_transport_fetcher(scripted([(200, THING_BODY)] * 5), min_spacing=5.0)

    for _ in range(5):
        await fetcher.fetch("/thing", {"id": "13"})

    times = [sent_at for sent_at, _ in requests]
    assert times[-1] - times[0] >= 4 * 5.0


@pytest.mark.asyncio
async def test_watermark_is_shared_across_endpoints(mock_transport_fetcher):
    fetcher, requests = mock_transport_fetcher(
        scripted([(200, THING_BODY), (200, '<user id="1" name="alice"/>')]), min_spacing=5.0
    )

    await fetcher.fetch("/thing", {"id": "13"})
    await fetcher.fetch("/user", {"name": "alice"})

    (first, _), (second, _) = requests
    assert second - first >= 5.0


def test_build_async_client_sets_headers_and_timeout():
    client = build_async_client("https://bgg.example/xmlapi2", 3.0, api_token="secret")

    assert client.headers["User-Agent"] == USER_AGENT
    assert client.headers["Authorization"] == "Bearer secret"
    assert client.timeout.read == 3.0
    assert str(client.base_url).startswith("https://bgg.example/xmlapi2")

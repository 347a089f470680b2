import pytest

from conftest import ScriptedFetcher, collection_payload, thing_xml, things_document
from bggproxy.core.exceptions import RateLimited, ServerError
from bggproxy.core.services.bgg_service import MAX_THINGS_PER_REQUEST, BggService
from bggproxy.domain.models import PlayPage, Thing
from bggproxy.infrastructure.cache.caching_service import CachingServiceImpl
from bggproxy.infrastructure.cache.memory_cache import MemoryCache
from bggproxy.infrastructure.cache.ttl_policy import TtlPolicyTable
from bggproxy.infrastructure.xml.tree import parse_xml

USER_XML = '<user id="42" name="alice" termsofuse="x"><firstname value="Alice"/><yearregistered value="2010"/></user>'
UNKNOWN_USER_XML = '<user id="" name="ghost" termsofuse="x"><firstname value=""/></user>'
PLAYS_XML = (
    '<plays username="alice" userid="42" total="1" page="1">'
    '<play id="900" date="2024-03-01" quantity="1" length="60" incomplete="0" nowinstats="1" location="Home">'
    '<item name="CATAN" objecttype="thing" objectid="13"><subtypes><subtype value="boardgame"/></subtypes></item>'
    '</play></plays>'
)
GEEKLIST_XML = (
    '<geeklist id="77" termsofuse="x"><postdate>Mon, 01 Jan 2024</postdate><username>alice</username>'
    '<title>Favourites</title><numitems>1</numitems><thumbs>3</thumbs>'
    '<item id="1" objecttype="thing" subtype="boardgame" objectid="13" objectname="CATAN" '
    'username="alice" postdate="Mon, 01 Jan 2024" thumbs="1" imageid="5"><body>Great</body></item>'
    '</geeklist>'
)


def things_payload(ids):
    return parse_xml(things_document([thing_xml(i, f"Game {i}") for i in ids]))


def thing_handler(known_ids=None):
    """Answers /thing with every requested id (or only the known ones)."""
    def handler(path, params):
        assert path == "/thing"
        ids = params["id"].split(",")
        if known_ids is not None:
            ids = [i for i in ids if i in known_ids]
        return things_payload(ids)
    return handler


@pytest.fixture
def cache(fake_clock, dict_storage):
    return CachingServiceImpl(l1=MemoryCache(clock=fake_clock), l2=dict_storage)


def make_service(handler, cache):
    fetcher = ScriptedFetcher(handler)
    return BggService(fetcher, cache), fetcher


@pytest.mark.asyncio
async def test_get_thing_is_cache_aside(cache, dict_storage):
    service, fetcher = make_service(thing_handler(), cache)

    first = await service.get_thing("13")
    second = await service.get_thing("13")

    assert first.name == "Game 13"
    assert second == first
    assert fetcher.calls == [("/thing", {"id": "13", "stats": 1})]
    assert dict_storage.ttls["thing:13"] == 7 * 24 * 3600


@pytest.mark.asyncio
async def test_get_thing_served_from_l2_after_l1_expiry(cache, fake_clock):
    service, fetcher = make_service(thing_handler(), cache)

    await service.get_thing("13")
    fake_clock.advance(301)
    thing = await service.get_thing("13")

    assert thing.id == "13"
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_unknown_thing_returns_none_and_is_not_cached(cache, dict_storage):
    service, fetcher = make_service(thing_handler(known_ids=set()), cache)

    assert await service.get_thing("0") is None
    assert await service.get_thing("0") is None

    assert len(fetcher.calls) == 2
    assert dict_storage.data == {}


@pytest.mark.asyncio
async def test_get_things_fetches_only_missing_ids_in_batches(cache):
    service, fetcher = make_service(thing_handler(), cache)
    ids = [str(i) for i in range(1, 46)]
    for thing_id in ids[:5]:
        await cache.set(f"thing:{thing_id}", Thing(id=thing_id, name=f"Cached {thing_id}").to_dict())

    things = await service.get_things(ids)

    assert [t.id for t in things] == ids
    assert things[0].name == "Cached 1"
    assert len(fetcher.calls) == 2
    batch_sizes = [len(params["id"].split(",")) for _, params in fetcher.calls]
    assert batch_sizes == [MAX_THINGS_PER_REQUEST, MAX_THINGS_PER_REQUEST]
    assert "1" not in fetcher.calls[0][1]["id"].split(",")


@pytest.mark.asyncio
async def test_get_things_caches_each_fetched_thing(cache, dict_storage):
    service, fetcher = make_service(thing_handler(), cache)

    await service.get_things(["1", "2"])
    thing = await service.get_thing("2")

    assert thing.id == "2"
    assert len(fetcher.calls) == 1
    assert {"thing:1", "thing:2"} <= set(dict_storage.data)


@pytest.mark.asyncio
async def test_get_things_keeps_request_order_and_skips_unknown(cache):
    service, _ = make_service(thing_handler(known_ids={"3", "1"}), cache)

    things = await service.get_things(["3", "99", "1", "3"])

    assert [t.id for t in things] == ["3", "1"]


@pytest.mark.asyncio
async def test_failing_l2_never_fails_the_operation(fake_clock, failing_storage):
    cache = CachingServiceImpl(l1=MemoryCache(clock=fake_clock), l2=failing_storage)
    service, fetcher = make_service(thing_handler(), cache)

    thing = await service.get_thing("13")

    assert thing.id == "13"
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_undecodable_cache_entry_is_refetched(cache, dict_storage):
    service, fetcher = make_service(thing_handler(), cache)
    dict_storage.data["thing:13"] = {"unexpected": "shape"}

    thing = await service.get_thing("13")

    assert thing.name == "Game 13"
    assert len(fetcher.calls) == 1
    assert dict_storage.data["thing:13"]["name"] == "Game 13"


@pytest.mark.asyncio
async def test_upstream_errors_propagate(cache):
    service, _ = make_service(lambda path, params: RateLimited("busy"), cache)

    with pytest.raises(RateLimited):
        await service.get_user("alice")


@pytest.mark.asyncio
async def test_get_user_and_unknown_user(cache, dict_storage):
    payloads = {"alice": parse_xml(USER_XML), "ghost": parse_xml(UNKNOWN_USER_XML)}
    service, fetcher = make_service(lambda path, params: payloads[params["name"]], cache)

    user = await service.get_user("alice")
    ghost = await service.get_user("ghost")

    assert user.id == "42"
    assert user.first_name == "Alice"
    assert ghost is None
    assert "user:ghost" not in dict_storage.data
    assert dict_storage.ttls["user:alice"] == 24 * 3600


@pytest.mark.asyncio
async def test_search_passes_exact_only_when_set(cache):
    service, fetcher = make_service(lambda path, params: things_payload(["13"]), cache)

    await service.search_things("catan")
    await service.search_things("catan", thing_type="boardgame", exact=True)

    assert fetcher.calls[0] == ("/search", {"query": "catan", "type": None})
    assert fetcher.calls[1] == ("/search", {"query": "catan", "type": "boardgame", "exact": 1})


@pytest.mark.asyncio
async def test_hot_items_are_cached_per_type(cache):
    service, fetcher = make_service(lambda path, params: things_payload(["1", "2"]), cache)

    first = await service.get_hot_items()
    again = await service.get_hot_items()
    await service.get_hot_items("rpg")

    assert [t.id for t in first] == ["1", "2"]
    assert again == first
    assert fetcher.calls == [("/hot", {"type": None}), ("/hot", {"type": "rpg"})]


@pytest.mark.asyncio
async def test_collection_goes_through_the_assembler_and_is_cached(cache, dict_storage):
    service, fetcher = make_service(lambda path, params: collection_payload(3), cache)

    collection = await service.get_user_collection("alice")
    await service.get_user_collection("alice")

    assert len(collection.items) == 3
    assert len(fetcher.calls) == 1
    assert dict_storage.ttls["collection:alice:all"] == 3600


@pytest.mark.asyncio
async def test_plays_page(cache):
    service, fetcher = make_service(lambda path, params: parse_xml(PLAYS_XML), cache)

    page = await service.get_user_plays("alice", {"mindate": "2024-01-01", "page": 1})

    assert isinstance(page, PlayPage)
    assert page.total == 1
    assert page.plays[0].item.object_id == "13"
    path, params = fetcher.calls[0]
    assert path == "/plays"
    assert params["username"] == "alice"
    assert params["mindate"] == "2024-01-01"


@pytest.mark.asyncio
async def test_empty_plays_response(cache):
    service, _ = make_service(lambda path, params: "", cache)

    page = await service.get_user_plays("alice")

    assert page == PlayPage(username="alice")


@pytest.mark.asyncio
async def test_geeklist_paths_are_quoted(cache):
    payloads = {"/geeklist/77": parse_xml(GEEKLIST_XML), "/geeklists/user/a%20b": ""}
    service, fetcher = make_service(lambda path, params: payloads[path], cache)

    geeklist = await service.get_geeklist("77")
    lists = await service.get_geeklists("a b", page=2)

    assert geeklist.title == "Favourites"
    assert lists == []
    assert fetcher.calls[1] == ("/geeklists/user/a%20b", {"page": 2})


@pytest.mark.asyncio
async def test_ttl_overrides_are_applied(fake_clock, dict_storage):
    cache = CachingServiceImpl(l1=MemoryCache(clock=fake_clock), l2=dict_storage)
    fetcher = ScriptedFetcher(thing_handler())
    service = BggService(fetcher, cache, ttl_table=TtlPolicyTable({"thing": {"l2": 10}}))

    await service.get_thing("13")

    assert dict_storage.ttls["thing:13"] == 10


@pytest.mark.asyncio
async def test_clear_cache_and_close(cache, dict_storage):
    service, fetcher = make_service(thing_handler(), cache)
    await service.get_thing("13")

    await service.clear_cache()
    await service.close()

    assert dict_storage.data == {}
    assert fetcher.closed is True


@pytest.mark.asyncio
async def test_server_errors_are_not_cached(cache, dict_storage):
    calls = []

    def handler(path, params):
        calls.append(path)
        if len(calls) == 1:
            return ServerError("down", status_code=500)
        return things_payload(["13"])

    service, _ = make_service(handler, cache)

    with pytest.raises(ServerError):
        await service.get_thing("13")
    assert (await service.get_thing("13")).id == "13"


@pytest.mark.asyncio
async def test_mutating_a_cache_hit_does_not_change_later_hits(cache):
    service, fetcher = make_service(thing_handler(), cache)
    await service.get_thing("13")

    hit = await service.get_thing("13")
    hit.alternate_names.append("Changed")
    hit.links.clear()

    again = await service.get_thing("13")

    assert again.alternate_names == []
    assert again.name == "Game 13"
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_get_things_strips_ids_before_keying_and_fetching(cache, dict_storage):
    service, fetcher = make_service(thing_handler(), cache)

    things = await service.get_things([" 13 ", "13", "   ", "822\n"])

    assert [t.id for t in things] == ["13", "822"]
    assert fetcher.calls == [("/thing", {"id": "13,822", "stats": 1})]
    assert {"thing:13", "thing:822"} == set(dict_storage.data)

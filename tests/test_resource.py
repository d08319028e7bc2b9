"""Tests for the lazy Resource graph."""

from unittest.mock import MagicMock, call

import pytest

from redfish_client.connector import Connector
from redfish_client.exceptions import (
    AsyncTimeoutError,
    IndexOutOfRangeError,
    MissingKeyError,
    NoAddressableIdError,
    ResourceNotFoundError,
)
from redfish_client.resource import Resource
from redfish_client.response import Response


def ok(body: str, headers: dict[str, str] | None = None) -> Response:
    return Response(status=200, headers=headers or {}, body=body.encode())


@pytest.fixture
def connector():
    """Connector double whose coroutine methods are AsyncMocks."""
    return MagicMock(spec=Connector)


# --- Construction ---


def test_wraps_data_without_fetching(connector):
    data = {"sample": "data"}
    resource = Resource(connector, raw=data)
    assert resource.raw is data
    connector.request.assert_not_called()


@pytest.mark.asyncio
async def test_from_id_fetches_resource(connector):
    connector.request.return_value = ok('{"@odata.id": "/", "a": "b"}')

    resource = await Resource.from_id(connector, "/")

    connector.request.assert_awaited_once_with("GET", "/")
    assert resource.raw == {"@odata.id": "/", "a": "b"}


@pytest.mark.asyncio
async def test_from_id_adds_missing_id(connector):
    connector.request.return_value = ok('{"a": "b"}')
    resource = await Resource.from_id(connector, "/")
    assert resource.raw == {"@odata.id": "/", "a": "b"}
    assert resource.oid == "/"


@pytest.mark.asyncio
async def test_from_id_keeps_response_headers(connector):
    connector.request.return_value = ok("{}", headers={"etag": "W/1"})
    resource = await Resource.from_id(connector, "/a")
    assert resource.headers == {"etag": "W/1"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [201, 400, 404, 500])
async def test_from_id_fails_on_service_error(connector, status):
    connector.request.return_value = Response(status=status, body=b"{}")
    with pytest.raises(ResourceNotFoundError) as exc_info:
        await Resource.from_id(connector, "/")
    assert exc_info.value.response.status == status


@pytest.mark.asyncio
async def test_from_id_fails_on_invalid_json(connector):
    connector.request.return_value = ok("not json")
    with pytest.raises(ResourceNotFoundError):
        await Resource.from_id(connector, "/")


@pytest.mark.asyncio
async def test_fragment_selects_object_field(connector):
    connector.request.return_value = ok('{"@odata.id": "/a", "b": {"c": "d"}}')

    resource = await Resource.from_id(connector, "/a#b")

    connector.request.assert_awaited_once_with("GET", "/a")
    assert resource.raw == {"@odata.id": "/a#b", "c": "d"}


@pytest.mark.asyncio
async def test_fragment_indexes_into_array(connector):
    connector.request.return_value = ok('{"@odata.id": "/a", "f": [{"g": "h"}]}')

    resource = await Resource.from_id(connector, "/a#/f/0")

    connector.request.assert_awaited_once_with("GET", "/a")
    assert resource.raw == {"g": "h", "@odata.id": "/a#/f/0"}


@pytest.mark.asyncio
async def test_fragment_uses_numeric_segments_as_object_keys(connector):
    connector.request.return_value = ok('{"@odata.id": "/a", "5": {"6": "7"}}')
    resource = await Resource.from_id(connector, "/a#/5")
    assert resource.raw == {"@odata.id": "/a#/5", "6": "7"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "oid",
    ["/a#/missing", "/a#/f/3", "/a#/f/x", "/a#/f/\N{SUPERSCRIPT TWO}", "/a#/s", "/a#/s/t"],
)
async def test_unresolvable_fragment(connector, oid):
    connector.request.return_value = ok('{"f": [{"g": "h"}], "s": "scalar"}')
    with pytest.raises(ResourceNotFoundError):
        await Resource.from_id(connector, oid)


@pytest.mark.asyncio
async def test_fragment_depth_is_capped(connector):
    connector.request.return_value = ok("{}")
    with pytest.raises(ResourceNotFoundError):
        await Resource.from_id(connector, "/a#" + "/x" * 40)


# --- Navigation ---


@pytest.mark.asyncio
async def test_field_returns_literal():
    assert await Resource(None, raw={"k": "v"}).field("k") == "v"


@pytest.mark.asyncio
async def test_field_wraps_inline_object_without_fetching(connector):
    resource = Resource(connector, raw={"Status": {"Health": "OK"}})

    status = await resource.field("Status")

    assert isinstance(status, Resource)
    assert status.raw == {"Health": "OK"}
    connector.request.assert_not_called()


@pytest.mark.asyncio
async def test_field_loads_reference_on_demand(connector):
    connector.request.return_value = ok('{"k": "v"}')
    resource = Resource(connector, raw={"s": {"@odata.id": "/s"}})

    sub = await resource.field("s")

    connector.request.assert_awaited_once_with("GET", "/s")
    assert sub.raw == {"@odata.id": "/s", "k": "v"}


@pytest.mark.asyncio
async def test_field_maps_arrays_element_wise(connector):
    connector.request.return_value = ok('{"k": "v"}')
    resource = Resource(
        connector, raw={"m": [{"@odata.id": "/s"}, {"inline": 1}, 3]}
    )

    members = await resource.field("m")

    assert members[0].raw == {"@odata.id": "/s", "k": "v"}
    assert members[1].raw == {"inline": 1}
    assert members[2] == 3
    assert connector.request.await_count == 1


@pytest.mark.asyncio
async def test_field_returns_none_on_missing_key():
    assert await Resource(None, raw={}).field("missing") is None


@pytest.mark.asyncio
async def test_strict_field_raises_on_missing_key():
    resource = Resource(None, raw={}, strict=True)
    with pytest.raises(MissingKeyError):
        await resource.field("missing")
    with pytest.raises(KeyError):
        await resource.field("missing")


@pytest.mark.asyncio
async def test_field_returns_none_on_missing_reference(connector):
    connector.request.return_value = Response(status=404, body=b"{}")
    resource = Resource(connector, raw={"missing": {"@odata.id": "/missing"}})
    assert await resource.field("missing") is None


@pytest.mark.asyncio
async def test_strict_field_raises_on_missing_reference(connector):
    connector.request.return_value = Response(status=404, body=b"{}")
    resource = Resource(
        connector, raw={"missing": {"@odata.id": "/missing"}}, strict=True
    )
    with pytest.raises(ResourceNotFoundError):
        await resource.field("missing")


@pytest.mark.asyncio
async def test_without_memoization_every_access_goes_to_connector(connector):
    connector.request.return_value = ok('{"k": "v"}')
    resource = Resource(connector, raw={"s": {"@odata.id": "/s"}})

    first = await resource.field("s")
    second = await resource.field("s")

    assert first is not second
    assert connector.request.await_count == 2


@pytest.mark.asyncio
async def test_memoization_fetches_reference_once(connector):
    connector.request.return_value = ok('{"k": "v"}')
    resource = Resource(connector, raw={"s": {"@odata.id": "/s"}}, memoize=True)

    first = await resource.field("s")
    second = await resource.field("s")

    assert first is second
    assert connector.request.await_count == 1


@pytest.mark.asyncio
async def test_policies_propagate_to_children(connector):
    connector.request.return_value = ok('{"k": "v"}')
    resource = Resource(
        connector, raw={"s": {"@odata.id": "/s"}}, strict=True, memoize=True
    )
    child = await resource.field("s")
    assert child.strict and child.memoize


@pytest.mark.asyncio
async def test_dig_retrieves_key():
    assert await Resource(None, raw={"key": "value"}).dig("key") == "value"


@pytest.mark.asyncio
async def test_dig_loads_subresources(connector):
    connector.request.return_value = ok('{"k": "v"}')
    resource = Resource(connector, raw={"s": {"@odata.id": "/s"}})
    assert await resource.dig("s", "k") == "v"


@pytest.mark.asyncio
async def test_dig_nested_keys_and_indices():
    resource = Resource(None, raw={"a": {"b": "c"}, "l": [{"b": "d"}]})
    assert await resource.dig("a", "b") == "c"
    assert await resource.dig("l", 0, "b") == "d"


@pytest.mark.asyncio
async def test_dig_stops_at_first_missing_value():
    resource = Resource(None, raw={"l": [], "s": 1})
    assert await resource.dig("x", 4, "a") is None
    assert await resource.dig("l", 3, "a") is None
    assert await resource.dig("s", "a") is None


@pytest.mark.asyncio
async def test_strict_dig_raises_on_bad_index():
    resource = Resource(None, raw={"l": [1]}, strict=True)
    with pytest.raises(IndexOutOfRangeError):
        await resource.dig("l", 5)
    with pytest.raises(IndexError):
        await resource.dig("l", "first")


def test_membership_and_keys():
    resource = Resource(None, raw={"d": 1})
    assert "d" in resource
    assert "missing" not in resource
    assert list(resource.keys()) == ["d"]


def test_str_dumps_content_to_json():
    assert str(Resource(None, raw={"k": 5})) == '{\n  "k": 5\n}'


# --- Verbs ---


@pytest.mark.asyncio
@pytest.mark.parametrize("verb", ["get", "post", "patch", "delete"])
async def test_verb_targets_id_by_default(connector, verb):
    await getattr(Resource(connector, raw={"@odata.id": "/a"}), verb)()
    connector.request.assert_awaited_once_with(verb.upper(), "/a", None)


@pytest.mark.asyncio
@pytest.mark.parametrize("verb", ["get", "post", "patch", "delete"])
async def test_verb_targets_selected_field(connector, verb):
    await getattr(Resource(connector, raw={"b": "/b"}), verb)(field="b")
    connector.request.assert_awaited_once_with(verb.upper(), "/b", None)


@pytest.mark.asyncio
@pytest.mark.parametrize("verb", ["get", "post", "patch", "delete"])
async def test_verb_path_wins_over_field(connector, verb):
    await getattr(Resource(connector, raw={"b": "/b"}), verb)(field="b", path="/c")
    connector.request.assert_awaited_once_with(verb.upper(), "/c", None)


@pytest.mark.asyncio
async def test_post_passes_payload(connector):
    await Resource(connector, raw={}).post(path="/c", payload={"ResetType": "On"})
    connector.request.assert_awaited_once_with("POST", "/c", {"ResetType": "On"})


@pytest.mark.asyncio
@pytest.mark.parametrize("verb", ["get", "post", "patch", "delete"])
async def test_verb_without_address_fails(connector, verb):
    with pytest.raises(NoAddressableIdError):
        await getattr(Resource(connector, raw={"a": 1}), verb)()
    connector.request.assert_not_called()


@pytest.mark.asyncio
async def test_verb_returns_monitor_state(connector):
    connector.request.return_value = Response(status=202)
    response = await Resource(connector, raw={}).patch(path="/j")
    assert response.done() is False


# --- Asynchronous operations ---


@pytest.mark.asyncio
async def test_wait_returns_completed_response_without_requests(connector):
    response = Response(status=200, body=b"b")
    assert await Resource(connector, raw={}).wait(response, delay=0) is response
    connector.request.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("pending", [0, 1, 3])
async def test_wait_polls_until_done(connector, pending):
    running = Response(status=202, headers={"location": "/m"}, body=b"b")
    final = ok("c")
    connector.request.side_effect = [running] * pending + [final]

    result = await Resource(connector, raw={}).wait(running, retries=10, delay=0)

    assert result is final
    assert connector.request.await_count == pending + 1
    connector.request.assert_has_awaits([call("GET", "/m")] * (pending + 1))


@pytest.mark.asyncio
async def test_wait_follows_moving_monitor(connector):
    running = Response(status=202, headers={"location": "http://h/m/1"})
    moved = Response(status=202, headers={"location": "/m/2"})
    connector.request.side_effect = [moved, ok("{}")]

    await Resource(connector, raw={}).wait(running, delay=0)

    assert connector.request.await_args_list == [call("GET", "/m/1"), call("GET", "/m/2")]


@pytest.mark.asyncio
@pytest.mark.parametrize("retries", [1, 4])
async def test_wait_times_out(connector, retries):
    running = Response(status=202, headers={"location": "/m"}, body=b"b")
    connector.request.return_value = running

    with pytest.raises(AsyncTimeoutError):
        await Resource(connector, raw={}).wait(running, retries=retries, delay=0)

    assert connector.request.await_count == retries


@pytest.mark.asyncio
async def test_wait_propagates_transport_errors(connector):
    running = Response(status=202, headers={"location": "/m"})
    connector.request.side_effect = ConnectionError("gone")
    with pytest.raises(ConnectionError):
        await Resource(connector, raw={}).wait(running, delay=0)
    assert connector.request.await_count == 1


# --- Refresh ---


@pytest.mark.asyncio
async def test_refresh_fetches_fresh_data(connector):
    connector.request.side_effect = [ok('{"a": 4}'), ok('{"b": 3}')]
    resource = await Resource.from_id(connector, "/")
    assert await resource.field("a") == 4

    await resource.refresh()

    connector.reset.assert_called_once_with("/")
    assert await resource.field("a") is None
    assert await resource.field("b") == 3
    assert resource.raw["@odata.id"] == "/"


@pytest.mark.asyncio
async def test_refresh_evicts_base_path_of_fragment(connector):
    connector.request.side_effect = [
        ok('{"f": [{"g": "h"}]}'),
        ok('{"f": [{"g": "i"}]}'),
    ]
    resource = await Resource.from_id(connector, "/e#/f/0")

    await resource.refresh()

    connector.reset.assert_called_once_with("/e")
    assert resource.raw == {"g": "i", "@odata.id": "/e#/f/0"}


@pytest.mark.asyncio
async def test_refresh_drops_memoized_fields(connector):
    connector.request.side_effect = [
        ok('{"s": {"@odata.id": "/s"}}'),
        ok('{"v": 1}'),
        ok('{"s": {"@odata.id": "/s"}}'),
        ok('{"v": 2}'),
    ]
    resource = await Resource.from_id(connector, "/", memoize=True)
    assert await resource.dig("s", "v") == 1

    await resource.refresh()

    assert await resource.dig("s", "v") == 2


@pytest.mark.asyncio
async def test_refresh_ignores_non_networked_resources(connector):
    resource = Resource(connector, raw={"a": "b"})
    await resource.refresh()
    assert await resource.field("a") == "b"
    connector.reset.assert_not_called()
    connector.request.assert_not_called()

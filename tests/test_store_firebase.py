import json

import httpx
import pytest

from greenguardian.domain.errors import StoreError, StoreWriteError
from greenguardian.drivers.store_firebase import FirebaseRealtimeStore, apply_event


def test_put_at_root_replaces_cache():
    cache = {"old": 1}
    assert apply_event(cache, "put", {"path": "/", "data": {"V1": 25, "B2": "0"}})
    assert cache == {"V1": 25, "B2": "0"}


def test_put_at_key_sets_and_null_deletes():
    cache = {"V1": 25, "B2": "0"}
    apply_event(cache, "put", {"path": "/B2", "data": "1"})
    apply_event(cache, "put", {"path": "/V1", "data": None})
    assert cache == {"B2": "1"}


def test_patch_merges_children():
    cache = {"V1": 25, "V2": 60}
    apply_event(cache, "patch", {"path": "/", "data": {"V2": 70, "V1": None, "Mode": "1"}})
    assert cache == {"V2": 70, "Mode": "1"}


def test_nested_put_creates_parents():
    cache = {}
    apply_event(cache, "put", {"path": "/schedules/u1/day-1", "data": [1, 2]})
    assert cache == {"schedules": {"u1": {"day-1": [1, 2]}}}


def test_other_events_are_ignored():
    cache = {"V1": 1}
    assert not apply_event(cache, "keep-alive", {})
    assert cache == {"V1": 1}


def test_handle_event_notifies_subscribers():
    store = FirebaseRealtimeStore("https://db.example.com")
    seen = []
    store.subscribe(seen.append)

    store.handle_event("put", json.dumps({"path": "/", "data": {"V1": 30}}))
    store.handle_event("keep-alive", "null")
    store.handle_event("put", "{not json")
    store.handle_event("patch", json.dumps({"path": "/", "data": {"B4": "1"}}))

    assert seen == [{"V1": 30}, {"V1": 30, "B4": "1"}]


def test_subscribe_delivers_cached_root():
    store = FirebaseRealtimeStore("https://db.example.com")
    store.handle_event("put", json.dumps({"path": "/", "data": {"V1": 30}}))
    seen = []
    unsubscribe = store.subscribe(seen.append)
    assert seen == [{"V1": 30}]

    unsubscribe()
    store.handle_event("put", json.dumps({"path": "/V1", "data": 31}))
    assert seen == [{"V1": 30}]


async def test_set_value_puts_json_string():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json="1")

    store = FirebaseRealtimeStore(
        "https://db.example.com/",
        root_path="greenhouse",
        auth_token="secret",
        transport=httpx.MockTransport(handler),
    )
    await store.set_value("B4", "1")

    req = requests[0]
    assert req.method == "PUT"
    assert req.url.path == "/greenhouse/B4.json"
    assert req.url.params["auth"] == "secret"
    assert json.loads(req.content) == "1"


async def test_set_value_failure_raises_store_write_error():
    def handler(request):
        return httpx.Response(401, json={"error": "Permission denied"})

    store = FirebaseRealtimeStore("https://db.example.com", transport=httpx.MockTransport(handler))
    with pytest.raises(StoreWriteError) as exc:
        await store.set_value("B3", "0")
    assert exc.value.key == "B3"


async def test_get_root():
    def handler(request):
        assert request.url.path == "/.json"
        return httpx.Response(200, json={"V1": 22.5, "Mode": "0"})

    store = FirebaseRealtimeStore("https://db.example.com", transport=httpx.MockTransport(handler))
    assert await store.get_root() == {"V1": 22.5, "Mode": "0"}


async def test_get_root_error():
    def handler(request):
        raise httpx.ConnectError("offline")

    store = FirebaseRealtimeStore("https://db.example.com", transport=httpx.MockTransport(handler))
    with pytest.raises(StoreError):
        await store.get_root()


async def test_stream_applies_server_sent_events():
    body = (
        "event: put\n"
        'data: {"path": "/", "data": {"V1": 25, "Mode": "1"}}\n'
        "\n"
        "event: keep-alive\n"
        "data: null\n"
        "\n"
        "event: put\n"
        'data: {"path": "/V1", "data": 29}\n'
        "\n"
    )

    def handler(request):
        assert request.headers["accept"] == "text/event-stream"
        return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

    store = FirebaseRealtimeStore("https://db.example.com", transport=httpx.MockTransport(handler))
    seen = []
    store.subscribe(seen.append)

    await store._stream_once()

    assert seen == [{"V1": 25, "Mode": "1"}, {"V1": 29, "Mode": "1"}]

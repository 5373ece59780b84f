import json

import pytest

from whisper_store.core import keys
from whisper_store.schemas.cache import CachedMessage
from whisper_store.services.durable_cache import DisplayNameCache, DurableTTLMap, MessageCache

DAY_MS = 24 * 60 * 60 * 1000


def cached(i: int) -> CachedMessage:
    return CachedMessage(id=f"m{i}", sender_id="u1", text=f"msg {i}", timestamp=i)


@pytest.mark.asyncio
async def test_expired_entry_is_removed_on_read(store, clock):
    ttl_map = DurableTTLMap(store, "cache", 1000, clock=clock)
    await ttl_map.put("a", {"x": 1})
    await ttl_map.put("b", 2)

    clock.advance(1001)
    await ttl_map.put("b", 3)

    assert await ttl_map.get("a") is None
    assert await ttl_map.get("b") == 3
    assert set(json.loads(await store.get("cache"))) == {"b"}


@pytest.mark.asyncio
async def test_malformed_entries_are_treated_as_expired(store, clock):
    await store.set("cache", json.dumps({"a": "bare", "b": {"value": 1, "timestamp": "x"}}))
    ttl_map = DurableTTLMap(store, "cache", 1000, clock=clock)

    assert await ttl_map.get("a") is None
    assert await ttl_map.get("b") is None


@pytest.mark.asyncio
async def test_message_cache_keeps_last_thirty(store, clock):
    cache = MessageCache(store, clock=clock)

    await cache.cache_messages("c1", [cached(i) for i in range(45)])

    messages = await cache.get_cached_messages("c1")
    assert len(messages) == 30
    assert messages[0].id == "m15"
    assert messages[-1].id == "m44"


@pytest.mark.asyncio
async def test_message_cache_expires_after_a_day(store, clock):
    cache = MessageCache(store, clock=clock)
    await cache.cache_messages("c1", [cached(1)])

    clock.advance(DAY_MS + 1)

    assert await cache.get_cached_messages("c1") == []


@pytest.mark.asyncio
async def test_message_cache_clear(store, clock):
    cache = MessageCache(store, clock=clock)
    await cache.cache_messages("c1", [cached(1)])
    await cache.cache_messages("c2", [cached(2)])

    await cache.clear_message_cache("c1")
    assert await cache.get_cached_messages("c1") == []
    assert len(await cache.get_cached_messages("c2")) == 1

    await cache.clear_all()
    assert await store.get(keys.MESSAGE_CACHE) is None


@pytest.mark.asyncio
async def test_display_names_last_a_week(store, clock):
    names = DisplayNameCache(store, clock=clock)
    await names.cache_display_name("u1", "Ada")

    clock.advance(7 * DAY_MS)
    assert await names.get_display_name("u1") == "Ada"

    clock.advance(1)
    assert await names.get_display_name("u1") is None

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from whisper_store.core.settings import Settings
from whisper_store.db.factory import build_store
from whisper_store.db.kv_store import KeyValueStore, MemoryKeyValueStore, StorageError
from whisper_store.db.redis_store import RedisKeyValueStore
from whisper_store.db.sql_store import SqlKeyValueStore


@pytest.fixture(params=["memory", "sql"])
def any_store(request, store, sql_store):
    return store if request.param == "memory" else sql_store


@pytest.mark.asyncio
async def test_get_missing_key_returns_none(any_store):
    assert await any_store.get("@whisper:nothing") is None


@pytest.mark.asyncio
async def test_set_overwrites_previous_value(any_store):
    await any_store.set("k", "one")
    await any_store.set("k", "two")

    assert await any_store.get("k") == "two"


@pytest.mark.asyncio
async def test_remove_missing_key_is_a_no_op(any_store):
    await any_store.remove("never-set")

    assert await any_store.get_all_keys() == []


@pytest.mark.asyncio
async def test_multi_remove_leaves_other_keys(any_store):
    for key in ("a", "b", "c"):
        await any_store.set(key, key.upper())

    await any_store.multi_remove(["a", "c", "missing"])

    assert await any_store.get_all_keys() == ["b"]
    assert await any_store.get("b") == "B"


@pytest.mark.asyncio
async def test_multi_remove_empty_list(any_store):
    await any_store.set("a", "1")
    await any_store.multi_remove([])

    assert await any_store.get("a") == "1"


def test_backends_satisfy_protocol(store, sql_store):
    assert isinstance(store, KeyValueStore)
    assert isinstance(sql_store, KeyValueStore)


@pytest.mark.asyncio
async def test_sql_store_wraps_database_errors(mocker):
    factory = mocker.MagicMock()
    factory.return_value.__enter__.return_value.get.side_effect = OperationalError(
        "SELECT", {}, Exception("database is locked")
    )
    sql = SqlKeyValueStore(factory)

    with pytest.raises(StorageError):
        await sql.get("k")


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    return client


@pytest.mark.asyncio
async def test_redis_store_prefixes_keys(redis_client):
    redis_store = RedisKeyValueStore(redis_client, prefix="device-1:")

    await redis_store.set("@whisper:drafts", "{}")
    await redis_store.remove("@whisper:drafts")

    redis_client.set.assert_awaited_once_with("device-1:@whisper:drafts", "{}")
    redis_client.delete.assert_awaited_once_with("device-1:@whisper:drafts")


@pytest.mark.asyncio
async def test_redis_store_decodes_bytes(redis_client):
    redis_client.get.return_value = b'{"a":1}'
    redis_store = RedisKeyValueStore(redis_client, prefix="")

    assert await redis_store.get("k") == '{"a":1}'


@pytest.mark.asyncio
async def test_redis_multi_remove_is_one_delete(redis_client):
    redis_store = RedisKeyValueStore(redis_client, prefix="p:")

    await redis_store.multi_remove(["a", "b"])
    await redis_store.multi_remove([])

    redis_client.delete.assert_awaited_once_with("p:a", "p:b")


@pytest.mark.asyncio
async def test_redis_get_all_keys_strips_prefix():
    async def scan_iter(match):
        assert match == "p:*"
        for key in (b"p:casper:one", "p:@whisper:drafts"):
            yield key

    client = MagicMock()
    client.scan_iter = scan_iter
    redis_store = RedisKeyValueStore(client, prefix="p:")

    assert await redis_store.get_all_keys() == ["casper:one", "@whisper:drafts"]


@pytest.mark.asyncio
async def test_redis_errors_become_storage_errors(redis_client):
    redis_client.get.side_effect = RedisConnectionError("refused")
    redis_store = RedisKeyValueStore(redis_client, prefix="")

    with pytest.raises(StorageError):
        await redis_store.get("k")


def test_build_store_memory():
    assert isinstance(build_store(Settings(store_backend="memory")), MemoryKeyValueStore)


@pytest.mark.asyncio
async def test_build_store_sql_creates_table():
    sql = build_store(Settings(store_backend="sql", database_url="sqlite://"))

    assert isinstance(sql, SqlKeyValueStore)
    await sql.set("k", "v")
    assert await sql.get("k") == "v"


def test_build_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_store(Settings(store_backend="floppy"))

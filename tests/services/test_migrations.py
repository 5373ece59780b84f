import json
from unittest.mock import AsyncMock

import pytest

from whisper_store.core import keys
from whisper_store.db.kv_store import StorageError
from whisper_store.services.migrations import (
    CURRENT_SCHEMA_VERSION,
    MigrationError,
    MigrationStep,
    SchemaMigrator,
    run_migrations,
)


@pytest.mark.asyncio
async def test_fresh_install_is_stamped_with_current_version(store):
    assert await run_migrations(store) == CURRENT_SCHEMA_VERSION
    assert await store.get(keys.SCHEMA_VERSION) == str(CURRENT_SCHEMA_VERSION)


@pytest.mark.asyncio
async def test_current_version_performs_no_writes(store, mocker):
    await store.set(keys.SCHEMA_VERSION, str(CURRENT_SCHEMA_VERSION))
    spy = mocker.spy(store, "set")

    await run_migrations(store)

    spy.assert_not_called()


@pytest.mark.asyncio
async def test_unparsable_version_counts_as_zero(store):
    await store.set(keys.SCHEMA_VERSION, "v-two")

    assert await SchemaMigrator(store).get_stored_version() == 0
    assert await run_migrations(store) == CURRENT_SCHEMA_VERSION


@pytest.mark.asyncio
async def test_steps_run_in_order_from_stored_version(store):
    applied = []

    def step(version):
        async def apply(_store):
            applied.append(version)

        return MigrationStep(version, f"step {version}", apply)

    await store.set(keys.SCHEMA_VERSION, "1")
    migrator = SchemaMigrator(store, [step(3), step(1), step(2)], current_version=3)

    assert await migrator.run_migrations() == 3
    assert applied == [2, 3]


@pytest.mark.asyncio
async def test_failed_step_leaves_version_unchanged(store):
    failing = MigrationStep(1, "explode", AsyncMock(side_effect=ValueError("bad data")))

    with pytest.raises(MigrationError):
        await SchemaMigrator(store, [failing], current_version=1).run_migrations()

    assert await store.get(keys.SCHEMA_VERSION) is None


@pytest.mark.asyncio
async def test_store_failure_raises_migration_error(failing_store):
    with pytest.raises(MigrationError):
        await run_migrations(failing_store)


@pytest.mark.asyncio
async def test_version_write_failure_raises(store, mocker):
    mocker.patch.object(store, "set", AsyncMock(side_effect=StorageError("read-only")))

    with pytest.raises(MigrationError):
        await SchemaMigrator(store, [], current_version=1).run_migrations()


@pytest.mark.asyncio
async def test_newer_stored_version_is_left_alone(store, mocker):
    await store.set(keys.SCHEMA_VERSION, "99")
    spy = mocker.spy(store, "set")

    assert await run_migrations(store) == 99
    spy.assert_not_called()


def test_duplicate_step_versions_rejected(store):
    noop = AsyncMock()
    with pytest.raises(ValueError):
        SchemaMigrator(store, [MigrationStep(1, "a", noop), MigrationStep(1, "b", noop)])


@pytest.mark.asyncio
async def test_queue_normalization_drops_bad_entries(store):
    await store.set(keys.SCHEMA_VERSION, "1")
    await store.set(
        keys.OUTBOUND_QUEUE,
        json.dumps(
            [
                {"tempId": "t1", "conversationId": "c", "text": "a", "timestamp": 1},
                {"conversationId": "c", "text": "no id", "timestamp": 2},
                {"tempId": "t1", "conversationId": "c", "text": "dup", "timestamp": 3},
                {"tempId": "t2", "conversationId": "c", "text": "b", "timestamp": 4, "retryCount": 3},
            ]
        ),
    )

    await run_migrations(store)

    queue = json.loads(await store.get(keys.OUTBOUND_QUEUE))
    assert [item["tempId"] for item in queue] == ["t1", "t2"]
    assert [item["retryCount"] for item in queue] == [0, 3]
    assert queue[0]["text"] == "a"

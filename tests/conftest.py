# tests/conftest.py
from __future__ import annotations

from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from whisper_store.core.settings import Settings
from whisper_store.db.kv_store import KeyValueStore, MemoryKeyValueStore, StorageError
from whisper_store.db.session import create_tables, drop_tables
from whisper_store.db.sql_store import SqlKeyValueStore

TEST_DB_URL = "sqlite://"
START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FlakyStore(MemoryKeyValueStore):
    """Memory store whose next ``get`` can be made to fail once."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next_get = False

    async def get(self, key: str) -> str | None:
        if self.fail_next_get:
            self.fail_next_get = False
            raise StorageError("transient read failure")
        return await super().get(key)


@pytest.fixture()
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(store_backend="memory", queue_interval_seconds=0.1)


@pytest.fixture()
def failing_store() -> AsyncMock:
    """Store whose every operation fails the way a broken backend would."""
    failing = AsyncMock(spec=KeyValueStore)
    error = StorageError("disk unavailable")
    failing.get.side_effect = error
    failing.set.side_effect = error
    failing.remove.side_effect = error
    failing.multi_remove.side_effect = error
    failing.get_all_keys.side_effect = error
    return failing


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def sql_store(engine: Engine) -> SqlKeyValueStore:
    return SqlKeyValueStore(sessionmaker(bind=engine, autocommit=False, autoflush=False))

"""Select a durable store backend from settings."""

from __future__ import annotations

from whisper_store.core.settings import Settings, settings
from whisper_store.db.kv_store import KeyValueStore, MemoryKeyValueStore


def build_store(config: Settings | None = None) -> KeyValueStore:
    """Return the backend named by ``store_backend``.

    The SQL backend creates its table on first use of a fresh database.
    """
    config = config or settings
    backend = config.store_backend.strip().lower()

    if backend == "memory":
        return MemoryKeyValueStore()

    if backend == "sql":
        from whisper_store.db.session import (
            create_tables,
            make_engine,
            make_session_factory,
        )
        from whisper_store.db.sql_store import SqlKeyValueStore

        engine = make_engine(config.database_url, echo=config.sql_debug)
        create_tables(engine)
        return SqlKeyValueStore(make_session_factory(engine))

    if backend == "redis":
        from whisper_store.db.redis_store import RedisKeyValueStore

        return RedisKeyValueStore(url=config.redis_url, prefix=config.redis_key_prefix)

    raise ValueError(f"Unknown store backend: {config.store_backend!r}")

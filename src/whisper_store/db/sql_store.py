"""SQL-backed durable key-value store.

SQLAlchemy sessions are blocking, so each operation runs in a worker thread
and the async API never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from whisper_store.db.kv_store import StorageError
from whisper_store.db.session import SessionLocal
from whisper_store.models import KeyValueEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlKeyValueStore:
    """Key-value store persisting each slot as one ``kv_store`` row."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    async def get(self, key: str) -> str | None:
        return await self._run(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        await self._run(self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        await self._run(self._remove_sync, [key])

    async def multi_remove(self, keys: Iterable[str]) -> None:
        key_list = list(keys)
        if not key_list:
            return
        await self._run(self._remove_sync, key_list)

    async def get_all_keys(self) -> list[str]:
        return await self._run(self._keys_sync)

    async def _run(self, func: Callable[..., T], *args: object) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except SQLAlchemyError as exc:
            logger.warning("SqlKeyValueStore operation %s failed: %s", func.__name__, exc)
            raise StorageError(str(exc)) from exc

    def _get_sync(self, key: str) -> str | None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry else None

    def _set_sync(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(KeyValueEntry(key=key, value=value))
            db.commit()

    def _remove_sync(self, keys: list[str]) -> None:
        with self._session_factory() as db:
            (
                db.query(KeyValueEntry)
                .filter(KeyValueEntry.key.in_(keys))
                .delete(synchronize_session=False)
            )
            db.commit()

    def _keys_sync(self) -> list[str]:
        with self._session_factory() as db:
            rows = db.query(KeyValueEntry.key).order_by(KeyValueEntry.key).all()
            return [row[0] for row in rows]


__all__ = ["SqlKeyValueStore"]

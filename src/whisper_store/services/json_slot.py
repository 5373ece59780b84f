"""JSON value stored under a single durable key.

Every accessor in this package is a thin layer over ``JsonSlot``: reads
degrade to a default instead of raising, writes report success as a bool,
and read-merge-write cycles on one key are serialized per store.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar
from weakref import WeakKeyDictionary

from whisper_store.db.kv_store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures a durable store may surface; anything else is a programming error.
STORE_ERRORS: tuple[type[BaseException], ...] = (StorageError, OSError, TimeoutError)

_SLOT_LOCKS: WeakKeyDictionary[Any, dict[str, asyncio.Lock]] = WeakKeyDictionary()


def encode_json(value: Any) -> str:
    """Compact JSON, byte-compatible with what the mobile client writes."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def slot_lock(store: KeyValueStore, key: str) -> asyncio.Lock:
    """Return the lock guarding ``key`` on ``store``, shared by all slots."""
    locks = _SLOT_LOCKS.setdefault(store, {})
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


class JsonSlot(Generic[T]):
    """Typed JSON value under one key of a ``KeyValueStore``."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        default_factory: Callable[[], T],
        *,
        expected_type: type | tuple[type, ...] | None = None,
    ) -> None:
        self.store = store
        self.key = key
        self._default_factory = default_factory
        self._expected_type = expected_type

    @property
    def lock(self) -> asyncio.Lock:
        return slot_lock(self.store, self.key)

    async def read(self) -> T:
        """Return the stored value, or the default when absent or unreadable."""
        try:
            raw = await self.store.get(self.key)
        except STORE_ERRORS as exc:
            logger.warning("Failed to read %s: %s", self.key, exc)
            return self._default_factory()
        return self._decode(raw)

    async def read_strict(self) -> T:
        """Like ``read``, but a store failure is raised instead of hidden.

        Unparsable content still decodes to the default.
        """
        return self._decode(await self.store.get(self.key))

    def _decode(self, raw: str | None) -> T:
        if raw is None:
            return self._default_factory()

        try:
            value = json.loads(raw)
        except ValueError as exc:
            logger.warning("Discarding unparsable value under %s: %s", self.key, exc)
            return self._default_factory()

        if self._expected_type is not None and not isinstance(value, self._expected_type):
            logger.warning(
                "Discarding value of unexpected type %s under %s",
                type(value).__name__,
                self.key,
            )
            return self._default_factory()
        return value

    async def write(self, value: T) -> bool:
        """Serialize and store ``value``; return False if the store failed."""
        try:
            await self.store.set(self.key, encode_json(value))
        except STORE_ERRORS as exc:
            logger.error("Failed to write %s: %s", self.key, exc)
            return False
        return True

    async def remove(self) -> bool:
        try:
            await self.store.remove(self.key)
        except STORE_ERRORS as exc:
            logger.error("Failed to remove %s: %s", self.key, exc)
            return False
        return True

    async def mutate(self, change: Callable[[T], T | None]) -> bool:
        """Run a read-change-write cycle under the slot lock.

        ``change`` receives the current value and returns the value to store,
        or None to leave the slot untouched. If the current value cannot be
        read nothing is written. Returns False when the read or the write
        failed.
        """
        async with self.lock:
            try:
                current = await self.read_strict()
            except STORE_ERRORS as exc:
                logger.error("Failed to read %s; leaving it unchanged: %s", self.key, exc)
                return False
            updated = change(current)
            if updated is None:
                return True
            return await self.write(updated)


__all__ = ["JsonSlot", "STORE_ERRORS", "encode_json", "slot_lock"]

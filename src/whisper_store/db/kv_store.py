"""Durable key-value store contract and the in-memory backend."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable


class StorageError(RuntimeError):
    """Raised by a backend when the durable store cannot complete an operation."""


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string-to-string store with no transactions.

    Every method may suspend and may raise ``StorageError``.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def multi_remove(self, keys: Iterable[str]) -> None: ...

    async def get_all_keys(self) -> list[str]: ...


class MemoryKeyValueStore:
    """Process-local store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def get_all_keys(self) -> list[str]:
        return list(self._data)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the stored data."""
        return dict(self._data)


__all__ = ["KeyValueStore", "MemoryKeyValueStore", "StorageError"]

"""Redis-backed durable key-value store."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from redis import asyncio as redis_asyncio
from redis.exceptions import RedisError

from whisper_store.core.settings import settings
from whisper_store.db.kv_store import StorageError

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """Key-value store over a Redis database.

    Keys can be namespaced with ``prefix`` so several installs share one
    server; the prefix never leaks into the keys returned to callers.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        url: str | None = None,
        prefix: str | None = None,
    ) -> None:
        self._client = client or redis_asyncio.from_url(
            url or settings.redis_url, decode_responses=True
        )
        self._prefix = settings.redis_key_prefix if prefix is None else prefix

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(self._full_key(key))
        except RedisError as exc:
            raise self._wrap("get", exc) from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(self._full_key(key), value)
        except RedisError as exc:
            raise self._wrap("set", exc) from exc

    async def remove(self, key: str) -> None:
        try:
            await self._client.delete(self._full_key(key))
        except RedisError as exc:
            raise self._wrap("remove", exc) from exc

    async def multi_remove(self, keys: Iterable[str]) -> None:
        full_keys = [self._full_key(key) for key in keys]
        if not full_keys:
            return
        try:
            await self._client.delete(*full_keys)
        except RedisError as exc:
            raise self._wrap("multi_remove", exc) from exc

    async def get_all_keys(self) -> list[str]:
        keys: list[str] = []
        try:
            async for raw in self._client.scan_iter(match=f"{self._prefix}*"):
                key = raw.decode("utf-8") if isinstance(raw, bytes) else raw
                keys.append(key[len(self._prefix):])
        except RedisError as exc:
            raise self._wrap("get_all_keys", exc) from exc
        return keys

    async def close(self) -> None:
        """Release the underlying connection pool."""
        await self._client.aclose()

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    @staticmethod
    def _wrap(operation: str, exc: RedisError) -> StorageError:
        logger.warning("RedisKeyValueStore %s failed: %s", operation, exc)
        return StorageError(str(exc))


__all__ = ["RedisKeyValueStore"]

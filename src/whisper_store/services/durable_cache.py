"""Durable caches whose entries expire after a fixed age.

Each cache is one JSON object of ``{id: {"value": ..., "timestamp": ms}}``
under a single key. Expired entries are removed when they are read.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import ValidationError

from whisper_store.core import keys
from whisper_store.core.settings import settings
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.db.time import now_ms
from whisper_store.schemas.cache import CachedMessage
from whisper_store.services.json_slot import JsonSlot

logger = logging.getLogger(__name__)


class DurableTTLMap:
    """String-keyed map persisted under one key with per-entry expiry."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        ttl_ms: int,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._slot: JsonSlot[dict[str, Any]] = JsonSlot(store, key, dict, expected_type=dict)
        self.ttl_ms = ttl_ms
        self._clock = clock

    def _is_live(self, entry: Any, now: int) -> bool:
        if not isinstance(entry, dict):
            return False
        timestamp = entry.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            return False
        return now - timestamp <= self.ttl_ms

    async def get(self, entry_id: str) -> Any | None:
        """Return the live value for ``entry_id``; an expired one is deleted."""
        found: list[Any] = []
        now = self._clock()

        def check(entries: dict[str, Any]) -> dict[str, Any] | None:
            if entry_id not in entries:
                return None
            entry = entries[entry_id]
            if self._is_live(entry, now):
                found.append(entry["value"])
                return None
            del entries[entry_id]
            return entries

        await self._slot.mutate(check)
        return found[0] if found else None

    async def put(self, entry_id: str, value: Any) -> bool:
        entry = {"value": value, "timestamp": self._clock()}

        def put(entries: dict[str, Any]) -> dict[str, Any]:
            entries[entry_id] = entry
            return entries

        return await self._slot.mutate(put)

    async def delete(self, entry_id: str) -> bool:
        def drop(entries: dict[str, Any]) -> dict[str, Any] | None:
            if entry_id not in entries:
                return None
            del entries[entry_id]
            return entries

        return await self._slot.mutate(drop)

    async def clear(self) -> bool:
        return await self._slot.remove()


class MessageCache:
    """Most recent messages per conversation, for painting before sync."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl_ms: int | None = None,
        limit: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._map = DurableTTLMap(
            store,
            keys.MESSAGE_CACHE,
            settings.message_cache_ttl_ms if ttl_ms is None else ttl_ms,
            clock=clock,
        )
        self.limit = settings.message_cache_limit if limit is None else limit

    async def cache_messages(
        self, conversation_id: str, messages: Sequence[CachedMessage]
    ) -> bool:
        """Keep the last ``limit`` of ``messages`` for ``conversation_id``."""
        recent = list(messages)[-self.limit :] if self.limit > 0 else []
        payload = [message.model_dump(by_alias=True, exclude_none=True) for message in recent]
        return await self._map.put(conversation_id, payload)

    async def get_cached_messages(self, conversation_id: str) -> list[CachedMessage]:
        raw = await self._map.get(conversation_id)
        if not isinstance(raw, list):
            return []
        messages: list[CachedMessage] = []
        for item in raw:
            try:
                messages.append(CachedMessage.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed cached message: %s", exc)
        return messages

    async def clear_message_cache(self, conversation_id: str) -> bool:
        return await self._map.delete(conversation_id)

    async def clear_all(self) -> bool:
        return await self._map.clear()


class DisplayNameCache:
    """Resolved display names per user id."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl_ms: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._map = DurableTTLMap(
            store,
            keys.DISPLAY_NAME_CACHE,
            settings.display_name_cache_ttl_ms if ttl_ms is None else ttl_ms,
            clock=clock,
        )

    async def cache_display_name(self, user_id: str, display_name: str) -> bool:
        return await self._map.put(user_id, display_name)

    async def get_display_name(self, user_id: str) -> str | None:
        name = await self._map.get(user_id)
        return name if isinstance(name, str) else None

    async def clear_all(self) -> bool:
        return await self._map.clear()


__all__ = ["DisplayNameCache", "DurableTTLMap", "MessageCache"]

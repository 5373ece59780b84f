"""Typed accessors over the per-screen durable slots.

Drafts and scroll positions are JSON objects keyed by conversation id;
saving or clearing one conversation leaves the others untouched. The
selected conversation is stored as a bare string and theme preferences as
one JSON object.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from whisper_store.core import keys
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.schemas.preferences import ThemePreferences
from whisper_store.services.json_slot import STORE_ERRORS, JsonSlot

logger = logging.getLogger(__name__)


class ConversationMapStore:
    """JSON object of ``conversation_id -> value`` under one key."""

    def __init__(self, store: KeyValueStore, key: str) -> None:
        self._slot: JsonSlot[dict[str, Any]] = JsonSlot(store, key, dict, expected_type=dict)

    async def get_entry(self, conversation_id: str) -> Any | None:
        return (await self._slot.read()).get(conversation_id)

    async def set_entry(self, conversation_id: str, value: Any) -> bool:
        def put(entries: dict[str, Any]) -> dict[str, Any]:
            entries[conversation_id] = value
            return entries

        return await self._slot.mutate(put)

    async def clear_entry(self, conversation_id: str) -> bool:
        def drop(entries: dict[str, Any]) -> dict[str, Any] | None:
            if conversation_id not in entries:
                return None
            del entries[conversation_id]
            return entries

        return await self._slot.mutate(drop)


class DraftStore(ConversationMapStore):
    """Unsent composer text per conversation."""

    def __init__(self, store: KeyValueStore) -> None:
        super().__init__(store, keys.DRAFTS)

    async def save_draft(self, conversation_id: str, text: str) -> bool:
        return await self.set_entry(conversation_id, text)

    async def get_draft(self, conversation_id: str) -> str:
        draft = await self.get_entry(conversation_id)
        return draft if isinstance(draft, str) else ""

    async def clear_draft(self, conversation_id: str) -> bool:
        return await self.clear_entry(conversation_id)


class ScrollPositionStore(ConversationMapStore):
    """Last scroll offset per conversation."""

    def __init__(self, store: KeyValueStore) -> None:
        super().__init__(store, keys.SCROLL_POSITIONS)

    async def save_scroll_position(self, conversation_id: str, offset: float) -> bool:
        return await self.set_entry(conversation_id, offset)

    async def get_scroll_position(self, conversation_id: str) -> float | None:
        offset = await self.get_entry(conversation_id)
        if isinstance(offset, bool) or not isinstance(offset, int | float):
            return None
        return offset

    async def clear_scroll_position(self, conversation_id: str) -> bool:
        return await self.clear_entry(conversation_id)


class SelectedConversationStore:
    """Id of the conversation that was open last, stored as a plain string."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def save_selected_conversation(self, conversation_id: str) -> bool:
        try:
            await self._store.set(keys.SELECTED_CONVERSATION, conversation_id)
        except STORE_ERRORS as exc:
            logger.error("Failed to save selected conversation: %s", exc)
            return False
        return True

    async def get_selected_conversation(self) -> str | None:
        try:
            return await self._store.get(keys.SELECTED_CONVERSATION)
        except STORE_ERRORS as exc:
            logger.warning("Failed to read selected conversation: %s", exc)
            return None

    async def clear_selected_conversation(self) -> bool:
        try:
            await self._store.remove(keys.SELECTED_CONVERSATION)
        except STORE_ERRORS as exc:
            logger.error("Failed to clear selected conversation: %s", exc)
            return False
        return True


class ThemePreferencesStore:
    """Theme preferences; the one slot that survives logout."""

    def __init__(self, store: KeyValueStore) -> None:
        self._slot: JsonSlot[dict[str, Any] | None] = JsonSlot(
            store, keys.THEME_PREFS, lambda: None, expected_type=dict
        )

    async def save_theme_preferences(self, prefs: ThemePreferences) -> bool:
        return await self._slot.write(prefs.model_dump(by_alias=True, exclude_none=True))

    async def get_theme_preferences(self) -> ThemePreferences | None:
        raw = await self._slot.read()
        if raw is None:
            return None
        try:
            return ThemePreferences.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding invalid theme preferences: %s", exc)
            return None

    async def clear_theme_preferences(self) -> bool:
        return await self._slot.remove()


__all__ = [
    "ConversationMapStore",
    "DraftStore",
    "ScrollPositionStore",
    "SelectedConversationStore",
    "ThemePreferencesStore",
]

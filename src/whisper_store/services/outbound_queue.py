"""Outbound message queue for offline delivery.

The whole queue is one JSON array under a single durable key. Each
mutation is a full read, change and write of that array, run under the
slot lock so two coroutines in one process cannot lose each other's
updates. Order is insertion order and survives restarts.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from whisper_store.core import keys
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.schemas.queue import QueuedMessage, to_storage_keys
from whisper_store.services.json_slot import JsonSlot

logger = logging.getLogger(__name__)


def parse_queue(raw_items: list[Any]) -> list[QueuedMessage]:
    """Validate stored queue entries, skipping any that are malformed."""
    messages: list[QueuedMessage] = []
    for item in raw_items:
        try:
            messages.append(QueuedMessage.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed queue entry: %s", exc)
    return messages


def _stored_temp_id(item: Any) -> Any:
    return item.get("tempId") if isinstance(item, dict) else None


class OutboundQueue:
    """FIFO of pending outbound messages keyed by ``temp_id``.

    Mutations work on the stored entries as they are. An entry that does
    not validate is hidden from ``get_queue`` but is written back unchanged
    by every other operation.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._slot: JsonSlot[list[Any]] = JsonSlot(
            store, keys.OUTBOUND_QUEUE, list, expected_type=list
        )

    async def get_queue(self) -> list[QueuedMessage]:
        """Return the persisted queue, empty if nothing usable is stored."""
        return parse_queue(await self._slot.read())

    async def add_to_queue(self, message: QueuedMessage) -> bool:
        """Append ``message`` after every existing entry.

        A ``temp_id`` that is already queued is left where it is and nothing
        is written. Returns False only if the store failed.
        """
        added = False

        def append(items: list[Any]) -> list[Any] | None:
            nonlocal added
            if any(_stored_temp_id(item) == message.temp_id for item in items):
                logger.warning("Message %s is already queued", message.temp_id)
                return None
            added = True
            return [*items, message.to_storage()]

        persisted = await self._slot.mutate(append)
        if persisted and added:
            logger.debug("Queued message %s for %s", message.temp_id, message.conversation_id)
        return persisted

    async def remove_from_queue(self, temp_id: str) -> bool:
        """Drop the entry with ``temp_id``; the rest keep their order."""

        def drop(items: list[Any]) -> list[Any] | None:
            kept = [item for item in items if _stored_temp_id(item) != temp_id]
            return kept if len(kept) != len(items) else None

        return await self._slot.mutate(drop)

    async def update_queue_item(self, temp_id: str, updates: Mapping[str, Any]) -> bool:
        """Shallow-merge ``updates`` into the entry with ``temp_id``.

        ``updates`` may use field names (``retry_count``) or stored names
        (``retryCount``). Nothing is written when ``temp_id`` is not queued.
        """
        stored_updates = to_storage_keys(updates)

        def merge(items: list[Any]) -> list[Any] | None:
            for index, item in enumerate(items):
                if _stored_temp_id(item) == temp_id:
                    items[index] = {**item, **stored_updates}
                    return items
            logger.debug("update_queue_item: %s is not queued", temp_id)
            return None

        return await self._slot.mutate(merge)

    async def clear(self) -> bool:
        return await self._slot.remove()


__all__ = ["OutboundQueue", "parse_queue"]

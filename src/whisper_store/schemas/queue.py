# src/whisper_store/schemas/queue.py
"""Outbound queue Pydantic schemas."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MESSAGE_TYPE_TEXT = "text"
MESSAGE_TYPE_IMAGE = "image"


class QueuedMessage(BaseModel):
    """One outbound message held client-side until delivery is confirmed.

    Stored as camelCase JSON. Payload fields this model does not know about
    are kept so a round-trip through the queue never loses data.
    """

    temp_id: str = Field(..., alias="tempId", description="Client-generated queue key")
    conversation_id: str = Field(..., alias="conversationId")
    type: str = Field(default=MESSAGE_TYPE_TEXT, description="Payload variant")
    text: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    timestamp: int = Field(..., description="Client creation time, epoch ms")
    retry_count: int = Field(default=0, ge=0, alias="retryCount")
    last_retry_at: int | None = Field(
        default=None, alias="lastRetryAt", description="Epoch ms of the last failed attempt"
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_storage(self) -> dict[str, Any]:
        """Return the JSON-ready form written to the durable store."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def has_payload(self) -> bool:
        """Return True if the payload required by ``type`` is present."""
        if self.type == MESSAGE_TYPE_TEXT:
            return bool(self.text)
        if self.type == MESSAGE_TYPE_IMAGE:
            return bool(self.image_url)
        return False


def to_storage_keys(updates: Mapping[str, Any]) -> dict[str, Any]:
    """Translate field names in ``updates`` to their stored camelCase aliases."""
    translated: dict[str, Any] = {}
    for name, value in updates.items():
        field = QueuedMessage.model_fields.get(name)
        key = field.alias if field is not None and field.alias else name
        translated[key] = value
    return translated


@dataclass(frozen=True)
class QueueStatus:
    """Snapshot of the outbound queue for diagnostics."""

    total_messages: int
    ready_to_retry: int
    failed_messages: int


@dataclass
class QueueRunResult:
    """Outcome counters of one queue processing pass."""

    processed: int = 0
    delivered: int = 0
    failed: int = 0
    skipped: int = 0
    dropped: int = 0

"""Cache entry shapes shared by the ephemeral and durable caches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """A cached value and the epoch ms at which it was stored."""

    value: V
    timestamp: int

    def is_expired(self, now: int, ttl_ms: int) -> bool:
        return now - self.timestamp > ttl_ms


@dataclass(frozen=True)
class CachedTranslation:
    """Translated text of one message into one target language."""

    text: str
    source_language: str
    timestamp: int


class CachedImage(BaseModel):
    url: str
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")

    model_config = ConfigDict(populate_by_name=True)


class CachedMessage(BaseModel):
    """Compact message copy used to paint a conversation before it syncs."""

    id: str
    sender_id: str = Field(..., alias="senderId")
    sender_name: str | None = Field(default=None, alias="senderName")
    type: str = "text"
    text: str | None = None
    image: CachedImage | None = None
    timestamp: int
    status: str = "sent"
    temp_id: str | None = Field(default=None, alias="tempId")

    model_config = ConfigDict(populate_by_name=True)

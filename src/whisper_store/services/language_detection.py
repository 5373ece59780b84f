"""Language detection for messages and whole conversations.

The classifier and the message source are injected, so this module only
owns sampling, voting and a short-lived result cache.
"""

from __future__ import annotations

import hashlib
import logging
import random
from collections import Counter
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from whisper_store.core.settings import settings
from whisper_store.db.time import now_ms
from whisper_store.services.ttl_cache import BoundedTTLCache, OldestAccessEviction

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_DETECTABLE_LENGTH = 10
RECENT_MESSAGE_LIMIT = 20
MESSAGE_KEY_PREFIX_CHARS = 50

FetchRecentMessages = Callable[[str, int], Awaitable[Sequence[Mapping[str, Any]]]]
Classify = Callable[[str], Awaitable[str | None]]


def sample_messages(items: Sequence[T], count: int = 5, rng: random.Random | None = None) -> list[T]:
    """Return up to ``count`` items picked uniformly without replacement."""
    if len(items) <= count:
        return list(items)
    shuffled = list(items)
    (rng or random).shuffle(shuffled)
    return shuffled[:count]


def conversation_cache_key(conversation_id: str) -> str:
    return f"conv:{conversation_id}"


def message_cache_key(text: str) -> str:
    digest = hashlib.sha256(text[:MESSAGE_KEY_PREFIX_CHARS].encode("utf-8")).hexdigest()
    return f"msg:{digest}"


class LanguageDetector:
    def __init__(
        self,
        fetch_recent_messages: FetchRecentMessages,
        classify: Classify,
        *,
        ttl_ms: int | None = None,
        max_entries: int | None = None,
        sample_size: int | None = None,
        default_language: str | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._fetch_recent_messages = fetch_recent_messages
        self._classify = classify
        self.sample_size = settings.detection_sample_size if sample_size is None else sample_size
        self.default_language = default_language or settings.detection_default_language
        self._rng = rng
        self._cache: BoundedTTLCache[str, str] = BoundedTTLCache(
            settings.detection_cache_ttl_ms if ttl_ms is None else ttl_ms,
            max_entries=(
                settings.detection_cache_max_entries if max_entries is None else max_entries
            ),
            eviction=OldestAccessEviction(),
            clock=clock,
        )

    async def _classify_cached(self, text: str) -> str:
        key = message_cache_key(text)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        language = await self._classify(text) or self.default_language
        self._cache.set(key, language)
        self._cache.sweep_expired()
        return language

    async def detect_message_language(self, text: str) -> str:
        """Language of ``text``; short text or a classifier failure yields the default."""
        if not text or len(text.strip()) < MIN_DETECTABLE_LENGTH:
            return self.default_language
        try:
            return await self._classify_cached(text)
        except Exception:
            logger.exception("Error detecting message language")
            return self.default_language

    async def detect_conversation_language(
        self, conversation_id: str, current_user_id: str
    ) -> str:
        """Majority language of other participants' recent messages.

        A random sample of messages longer than ten characters is classified;
        ties go to the language seen first.
        """
        key = conversation_cache_key(conversation_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            recent = await self._fetch_recent_messages(conversation_id, RECENT_MESSAGE_LIMIT)
        except Exception:
            logger.exception("Error fetching messages for %s", conversation_id)
            return self.default_language

        candidates = [
            message["text"]
            for message in recent
            if message.get("senderId") != current_user_id
            and isinstance(message.get("text"), str)
            and len(message["text"]) > MIN_DETECTABLE_LENGTH
        ]
        if not candidates:
            return self.default_language

        # A sample the classifier fails on counts as a vote for the default.
        votes: Counter[str] = Counter()
        for text in sample_messages(candidates, self.sample_size, self._rng):
            votes[await self.detect_message_language(text)] += 1

        most_common = self.default_language
        highest = 0
        for language, count in votes.items():
            if count > highest:
                most_common, highest = language, count

        self._cache.set(key, most_common)
        self._cache.sweep_expired()
        return most_common

    def clear_detection_cache(self) -> None:
        self._cache.clear()

    def clear_conversation_cache(self, conversation_id: str) -> None:
        self._cache.delete(conversation_cache_key(conversation_id))


__all__ = [
    "LanguageDetector",
    "conversation_cache_key",
    "message_cache_key",
    "sample_messages",
]

"""Translation cache to avoid re-translating messages."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from whisper_store.core.settings import settings
from whisper_store.db.time import now_ms
from whisper_store.schemas.cache import CachedTranslation
from whisper_store.services.ttl_cache import BoundedTTLCache, OldestAccessEviction


@dataclass(frozen=True)
class TranslationCacheStats:
    total_entries: int
    message_count: int
    avg_translations_per_message: float


class TranslationCache:
    """Translations keyed by message id and target language.

    The entry ceiling counts every (message, language) pair. When it is
    exceeded the least recently accessed fifth of all entries is evicted in
    one pass.
    """

    def __init__(
        self,
        *,
        ttl_ms: int | None = None,
        max_entries: int | None = None,
        evict_fraction: float | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._clock = clock
        self._cache: BoundedTTLCache[tuple[str, str], CachedTranslation] = BoundedTTLCache(
            settings.translation_cache_ttl_ms if ttl_ms is None else ttl_ms,
            max_entries=(
                settings.translation_cache_max_entries if max_entries is None else max_entries
            ),
            eviction=OldestAccessEviction(
                settings.translation_cache_evict_fraction
                if evict_fraction is None
                else evict_fraction
            ),
            clock=clock,
        )

    def get(self, message_id: str, target_language: str) -> CachedTranslation | None:
        """Return a live translation or None; expired entries are dropped."""
        return self._cache.get((message_id, target_language))

    def set(
        self,
        message_id: str,
        target_language: str,
        text: str,
        source_language: str,
    ) -> None:
        translation = CachedTranslation(
            text=text,
            source_language=source_language,
            timestamp=self._clock(),
        )
        self._cache.set((message_id, target_language), translation)

    def clear_expired_cache(self) -> int:
        return self._cache.sweep_expired()

    def clear_message_cache(self, message_id: str) -> int:
        """Drop every language cached for ``message_id``."""
        removed = 0
        for key in self._cache.keys():
            if key[0] == message_id:
                removed += self._cache.delete(key)
        return removed

    def clear_cache(self) -> None:
        self._cache.clear()

    def as_map(self) -> dict[str, dict[str, CachedTranslation]]:
        """Nested ``message_id -> language -> translation`` view of stored entries."""
        nested: dict[str, dict[str, CachedTranslation]] = {}
        for (message_id, language), translation in self._cache.live_items():
            nested.setdefault(message_id, {})[language] = translation
        return nested

    def get_stats(self) -> TranslationCacheStats:
        keys = self._cache.keys()
        message_count = len({message_id for message_id, _ in keys})
        total = len(keys)
        return TranslationCacheStats(
            total_entries=total,
            message_count=message_count,
            avg_translations_per_message=total / message_count if message_count else 0.0,
        )


__all__ = ["TranslationCache", "TranslationCacheStats"]

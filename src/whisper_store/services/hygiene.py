"""Removal of per-user data on logout.

Theme preferences are device-level and are never cleared here.
"""

from __future__ import annotations

import logging

from whisper_store.core import keys
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.services.durable_cache import DisplayNameCache, MessageCache
from whisper_store.services.json_slot import STORE_ERRORS
from whisper_store.services.language_detection import LanguageDetector
from whisper_store.services.qa_sessions import SessionLog
from whisper_store.services.translation_cache import TranslationCache

logger = logging.getLogger(__name__)


async def clear_all_caches_except_prefs(store: KeyValueStore) -> bool:
    """Remove drafts, scroll positions, the outbound queue and the selection."""
    try:
        await store.multi_remove(list(keys.SESSION_KEYS))
    except STORE_ERRORS as exc:
        logger.error("Failed to clear session caches: %s", exc)
        return False
    logger.info("Cleared session caches")
    return True


async def clear_namespace(store: KeyValueStore, prefix: str = keys.CASPER_NAMESPACE) -> int:
    """Remove every key starting with ``prefix`` and return how many there were.

    Returns -1 if the store failed.
    """
    try:
        matching = [key for key in await store.get_all_keys() if key.startswith(prefix)]
        if matching:
            await store.multi_remove(matching)
    except STORE_ERRORS as exc:
        logger.error("Failed to clear %s* keys: %s", prefix, exc)
        return -1
    logger.debug("Removed %d keys under %s", len(matching), prefix)
    return len(matching)


class SessionHygiene:
    """Everything a logout must forget, in one place."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        translation_cache: TranslationCache | None = None,
        detector: LanguageDetector | None = None,
    ) -> None:
        self._store = store
        self._message_cache = MessageCache(store)
        self._display_names = DisplayNameCache(store)
        self._sessions = SessionLog(store)
        self._translation_cache = translation_cache
        self._detector = detector

    async def logout(self) -> bool:
        """Clear all per-user state; return False if any durable removal failed."""
        results = [
            await clear_all_caches_except_prefs(self._store),
            await self._message_cache.clear_all(),
            await self._display_names.clear_all(),
            await self._sessions.clear_all_sessions(),
            await clear_namespace(self._store) >= 0,
        ]
        if self._translation_cache is not None:
            self._translation_cache.clear_cache()
        if self._detector is not None:
            self._detector.clear_detection_cache()
        ok = all(results)
        if not ok:
            logger.warning("Logout left some durable data behind")
        return ok


__all__ = ["SessionHygiene", "clear_all_caches_except_prefs", "clear_namespace"]

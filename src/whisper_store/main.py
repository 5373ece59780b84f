"""Startup and shutdown wiring for the persistence layer."""

from __future__ import annotations

import logging

from whisper_store.core.settings import Settings, settings
from whisper_store.db.factory import build_store
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.services.hygiene import SessionHygiene
from whisper_store.services.migrations import SchemaMigrator
from whisper_store.services.outbound_queue import OutboundQueue
from whisper_store.services.queue_processor import QueueProcessor, SendMessage
from whisper_store.services.retry_policy import RetryPolicy
from whisper_store.services.scoped_store import (
    DraftStore,
    ScrollPositionStore,
    SelectedConversationStore,
    ThemePreferencesStore,
)
from whisper_store.services.translation_cache import TranslationCache

logger = logging.getLogger(__name__)


class PersistenceLayer:
    """One store with every accessor the client needs bound to it.

    ``start`` must complete before anything else reads the store: it runs
    the schema migrations and then starts queue delivery.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        send: SendMessage | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or settings
        self.store = store or build_store(self.config)
        self.migrator = SchemaMigrator(self.store)
        self.queue = OutboundQueue(self.store)
        self.drafts = DraftStore(self.store)
        self.scroll_positions = ScrollPositionStore(self.store)
        self.selected_conversation = SelectedConversationStore(self.store)
        self.theme = ThemePreferencesStore(self.store)
        self.translations = TranslationCache()
        self.hygiene = SessionHygiene(self.store, translation_cache=self.translations)
        self.processor = None
        if send is not None:
            self.processor = QueueProcessor(
                self.queue,
                send,
                policy=RetryPolicy(
                    base_delay_ms=self.config.retry_base_delay_ms,
                    max_delay_ms=self.config.retry_max_delay_ms,
                    max_attempts=self.config.retry_max_attempts,
                ),
                interval_seconds=self.config.queue_interval_seconds,
                drop_exhausted=self.config.queue_drop_exhausted,
            )

    async def start(self) -> int:
        """Migrate the store and start delivery; return the schema version."""
        version = await self.migrator.run_migrations()
        if self.processor is not None:
            await self.processor.start()
        logger.info("Persistence layer ready at schema version %d", version)
        return version

    async def stop(self) -> None:
        if self.processor is not None:
            await self.processor.stop()
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()

    async def logout(self) -> bool:
        return await self.hygiene.logout()

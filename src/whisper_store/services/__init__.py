# src/whisper_store/services/__init__.py
"""Persistence services built on the durable key-value store."""

from .durable_cache import DisplayNameCache, DurableTTLMap, MessageCache
from .hygiene import SessionHygiene, clear_all_caches_except_prefs, clear_namespace
from .json_slot import JsonSlot
from .language_detection import LanguageDetector, sample_messages
from .migrations import CURRENT_SCHEMA_VERSION, MigrationError, SchemaMigrator, run_migrations
from .outbound_queue import OutboundQueue
from .qa_sessions import SessionLog
from .query_cancellation import QueryCancelledError, QueryTracker, validate_query
from .queue_processor import QueueProcessor
from .retry_policy import RetryPolicy, calculate_retry_delay, should_retry_message
from .scoped_store import (
    DraftStore,
    ScrollPositionStore,
    SelectedConversationStore,
    ThemePreferencesStore,
)
from .translation_cache import TranslationCache
from .ttl_cache import BoundedTTLCache, OldestAccessEviction

__all__ = [
    "BoundedTTLCache",
    "CURRENT_SCHEMA_VERSION",
    "DisplayNameCache",
    "DraftStore",
    "DurableTTLMap",
    "JsonSlot",
    "LanguageDetector",
    "MessageCache",
    "MigrationError",
    "OldestAccessEviction",
    "OutboundQueue",
    "QueryCancelledError",
    "QueryTracker",
    "QueueProcessor",
    "RetryPolicy",
    "SchemaMigrator",
    "ScrollPositionStore",
    "SelectedConversationStore",
    "SessionHygiene",
    "SessionLog",
    "ThemePreferencesStore",
    "TranslationCache",
    "calculate_retry_delay",
    "clear_all_caches_except_prefs",
    "clear_namespace",
    "run_migrations",
    "sample_messages",
    "should_retry_message",
    "validate_query",
]

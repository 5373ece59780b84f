# src/whisper_store/schemas/__init__.py
"""Pydantic schemas and value types for persisted data."""

from .cache import CachedImage, CachedMessage, CachedTranslation, CacheEntry
from .preferences import ThemePreferences
from .queue import QueuedMessage, QueueRunResult, QueueStatus
from .sessions import QAMode, QASession, SessionStats

__all__ = [
    "CacheEntry",
    "CachedImage",
    "CachedMessage",
    "CachedTranslation",
    "QAMode",
    "QASession",
    "QueueRunResult",
    "QueueStatus",
    "QueuedMessage",
    "SessionStats",
    "ThemePreferences",
]

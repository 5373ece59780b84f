# src/whisper_store/models/__init__.py
"""SQLAlchemy models for whisper-store."""

from .kv_entry import KeyValueEntry

__all__ = ["KeyValueEntry"]

# src/whisper_store/db/__init__.py
"""Durable key-value store contract and backends."""

from .kv_store import KeyValueStore, MemoryKeyValueStore, StorageError

__all__ = ["KeyValueStore", "MemoryKeyValueStore", "StorageError"]

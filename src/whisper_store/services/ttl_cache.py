"""Bounded, time-expiring in-memory cache.

Expiry is lazy: an entry older than the TTL is treated as absent (and
dropped) when it is read, and ``sweep_expired`` is available as an explicit
maintenance pass. Capacity is enforced after each insert by a pluggable
eviction policy that picks victims from the access-time table.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Hashable, Iterator, Mapping
from typing import Generic, Protocol, TypeVar

from whisper_store.db.time import now_ms
from whisper_store.schemas.cache import CacheEntry

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class EvictionPolicy(Protocol):
    def select_victims(self, access_times: Mapping[K, int], total: int) -> list[K]: ...


class OldestAccessEviction:
    """Evict the least recently accessed ``fraction`` of all entries at once."""

    def __init__(self, fraction: float = 0.2) -> None:
        if not 0 < fraction <= 1:
            raise ValueError("fraction must be in (0, 1]")
        self.fraction = fraction

    def select_victims(self, access_times: Mapping[K, int], total: int) -> list[K]:
        count = math.ceil(total * self.fraction)
        ordered = sorted(access_times.items(), key=lambda item: item[1])
        return [key for key, _ in ordered[:count]]


class BoundedTTLCache(Generic[K, V]):
    """Cache of ``CacheEntry`` values with TTL and optional capacity."""

    def __init__(
        self,
        ttl_ms: int,
        *,
        max_entries: int | None = None,
        eviction: EvictionPolicy | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.ttl_ms = ttl_ms
        self.max_entries = max_entries
        self._eviction = eviction or OldestAccessEviction()
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}
        self._access_times: dict[K, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))

    def get_entry(self, key: K) -> CacheEntry[V] | None:
        """Return the live entry for ``key`` and mark it as accessed."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if entry.is_expired(now, self.ttl_ms):
            self.delete(key)
            return None
        self._access_times[key] = now
        return entry

    def get(self, key: K) -> V | None:
        entry = self.get_entry(key)
        return entry.value if entry else None

    def set(self, key: K, value: V) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(value=value, timestamp=now)
        self._access_times[key] = now
        self.evict_if_needed()

    def delete(self, key: K) -> bool:
        self._access_times.pop(key, None)
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self._access_times.clear()

    def keys(self) -> list[K]:
        """Every stored key, including entries that have expired but not been read."""
        return list(self._entries)

    def live_items(self) -> list[tuple[K, V]]:
        """Unexpired ``(key, value)`` pairs; access times are left untouched."""
        now = self._clock()
        return [
            (key, entry.value)
            for key, entry in self._entries.items()
            if not entry.is_expired(now, self.ttl_ms)
        ]

    def sweep_expired(self) -> int:
        """Remove every expired entry; return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now, self.ttl_ms)]
        for key in expired:
            self.delete(key)
        return len(expired)

    def evict_if_needed(self) -> int:
        """Apply the eviction policy if the cache is over capacity."""
        total = len(self._entries)
        if self.max_entries is None or total <= self.max_entries:
            return 0
        victims = self._eviction.select_victims(self._access_times, total)
        for key in victims:
            self.delete(key)
        logger.debug("Evicted %d of %d cache entries", len(victims), total)
        return len(victims)


__all__ = ["BoundedTTLCache", "EvictionPolicy", "OldestAccessEviction"]

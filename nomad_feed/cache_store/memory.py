"""In-memory TTL cache with an insertion-order size ceiling."""

import threading
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from nomad_feed.cache_store.base import CacheEntry, ReadingCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/in_memory_cache")

T = TypeVar("T")

DEFAULT_MAX_ENTRIES = 100


class InMemoryReadingCache(ReadingCache[T]):
    """Thread-safe TTL map; evicts the earliest-inserted entry when over capacity.

    Eviction is by insertion order, not recency of use: the key set is a small,
    fixed list of cities and hits are spread evenly across it.
    """

    def __init__(
        self,
        name: str = "readings",
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize with a display name, size ceiling and clock (epoch seconds)."""
        logger.debug(f"Initializing InMemoryReadingCache '{name}' (max_entries={max_entries})")
        self.name = name
        self.max_entries = max_entries
        self._clock = clock
        # dicts keep insertion order, so the first key is always the oldest
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def get_entry(self, key: str) -> Optional[CacheEntry[T]]:
        """Return the live entry for key; expired entries are removed here."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug(f"[{self.name}] expired entry dropped for {key}")
                return None
            return entry

    def get(self, key: str) -> Optional[T]:
        """Return the cached value for key, or None if missing/expired."""
        entry = self.get_entry(key)
        return entry.value if entry else None

    def put(self, key: str, value: T, ttl_seconds: float) -> CacheEntry[T]:
        """Insert or replace key; a replaced key moves to the newest position."""
        with self._lock:
            now = self._clock()
            entry = CacheEntry(value=value, created_at=now, expires_at=now + ttl_seconds)
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug(f"[{self.name}] evicted oldest entry {oldest}")
            return entry

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """Size and timestamps of the entries currently held (expired ones included until touched)."""
        with self._lock:
            return {
                "size": len(self._entries),
                "entries": [entry.describe(key) for key, entry in self._entries.items()],
            }

    def keys(self) -> list[str]:
        """Keys in insertion order, oldest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

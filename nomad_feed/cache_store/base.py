"""Shared protocol and entry type for reading caches."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value with its creation and expiry times (epoch seconds)."""
    value: T
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)

    def describe(self, key: str) -> Dict[str, Any]:
        """Serializable summary used by cache stats."""
        return {
            "cityId": key,
            "cachedAt": datetime.fromtimestamp(self.created_at, tz=timezone.utc).isoformat(),
            "expiresAt": self.expires_at_datetime().isoformat(),
        }


class ReadingCache(Protocol[T]):
    """Protocol for per-kind reading caches keyed by city id."""

    def get(self, key: str) -> Optional[T]:
        """Return the live value for key, dropping it if it has expired."""

    def get_entry(self, key: str) -> Optional[CacheEntry[T]]:
        """Like get(), but return the whole entry (for expiry reporting)."""

    def put(self, key: str, value: T, ttl_seconds: float) -> CacheEntry[T]:
        """Store value under key for ttl_seconds, evicting the oldest entry past the size ceiling."""

    def clear(self) -> None:
        """Drop every entry."""

    def stats(self) -> Dict[str, Any]:
        """Return size and per-entry timestamps."""

    def __len__(self) -> int:
        ...

"""Redis-backed reading cache with native TTLs and an insertion-order ceiling."""

import json
import time
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from nomad_feed.cache_store.base import CacheEntry
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/redis_cache")

M = TypeVar("M", bound=BaseModel)

DEFAULT_MAX_ENTRIES = 100


class RedisReadingCache(Generic[M]):
    """Stores readings as JSON under `<prefix><name>:<key>` with SETEX.

    A sorted set scored by creation time tracks insertion order so the size
    ceiling evicts the oldest key first, as the in-memory cache does. Redis
    errors are logged and treated as misses so the feed keeps serving.
    """

    def __init__(
        self,
        client,
        model_type: Type[M],
        name: str = "readings",
        max_entries: int = DEFAULT_MAX_ENTRIES,
        prefix: str = "nomad_feed:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize with a Redis client and the model type used to decode values."""
        logger.debug(f"Initializing RedisReadingCache '{name}'")
        self.client = client
        self.model_type = model_type
        self.name = name
        self.max_entries = max_entries
        self.prefix = prefix
        self._clock = clock

    @property
    def _order_key(self) -> str:
        return f"{self.prefix}{self.name}::order"

    def _key(self, key: str) -> str:
        """Return the Redis key for a city id."""
        return f"{self.prefix}{self.name}:{key}"

    def _dump(self, entry: CacheEntry[M]) -> bytes:
        data = {
            "created_at": entry.created_at,
            "expires_at": entry.expires_at,
            "value": entry.value.model_dump(mode="json"),
        }
        return json.dumps(data).encode("utf-8")

    def _load(self, raw: bytes) -> Optional[CacheEntry[M]]:
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            data = json.loads(raw)
            return CacheEntry(
                value=self.model_type.model_validate(data["value"]),
                created_at=float(data["created_at"]),
                expires_at=float(data["expires_at"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.error(f"[{self.name}] failed to decode cached entry: {exc}")
            return None

    def _forget(self, key: str) -> None:
        self.client.delete(self._key(key))
        self.client.zrem(self._order_key, key)

    def get_entry(self, key: str) -> Optional[CacheEntry[M]]:
        """Return the live entry for key; expired or undecodable entries are removed."""
        try:
            raw = self.client.get(self._key(key))
            if not raw:
                # the value expired on the Redis side; drop its order marker too
                self.client.zrem(self._order_key, key)
                return None
            entry = self._load(raw)
            if entry is None or entry.is_expired(self._clock()):
                self._forget(key)
                return None
            return entry
        except Exception as exc:  # pragma: no cover - defensive
            logger.error(f"[{self.name}] Redis read failed for {key}: {exc}")
            return None

    def get(self, key: str) -> Optional[M]:
        entry = self.get_entry(key)
        return entry.value if entry else None

    def put(self, key: str, value: M, ttl_seconds: float) -> CacheEntry[M]:
        """Write value with a Redis TTL and enforce the size ceiling."""
        now = self._clock()
        entry = CacheEntry(value=value, created_at=now, expires_at=now + ttl_seconds)
        try:
            self.client.setex(self._key(key), max(1, int(ttl_seconds + 0.999)), self._dump(entry))
            self.client.zadd(self._order_key, {key: now})
            overflow = self.client.zcard(self._order_key) - self.max_entries
            if overflow > 0:
                for member, _score in self.client.zpopmin(self._order_key, overflow):
                    oldest = member.decode("utf-8") if isinstance(member, bytes) else member
                    self.client.delete(self._key(oldest))
                    logger.debug(f"[{self.name}] evicted oldest entry {oldest}")
        except Exception as exc:  # pragma: no cover - defensive
            logger.error(f"[{self.name}] Redis write failed for {key}: {exc}")
        return entry

    def clear(self) -> None:
        """Best-effort removal of every key under this cache's namespace."""
        try:
            for redis_key in self.client.scan_iter(f"{self.prefix}{self.name}:*"):
                self.client.delete(redis_key)
        except Exception as exc:  # pragma: no cover - defensive
            logger.error(f"[{self.name}] failed to clear Redis cache: {exc}")

    def _members(self) -> list[str]:
        members = self.client.zrange(self._order_key, 0, -1)
        return [m.decode("utf-8") if isinstance(m, bytes) else m for m in members]

    def stats(self) -> Dict[str, Any]:
        """Size and timestamps of the live entries."""
        entries = []
        for key in self._members():
            entry = self.get_entry(key)
            if entry is not None:
                entries.append(entry.describe(key))
        return {"size": len(entries), "entries": entries}

    def __len__(self) -> int:
        return self.client.zcard(self._order_key)

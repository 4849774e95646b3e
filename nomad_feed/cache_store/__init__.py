"""Reading cache backends."""

from .base import CacheEntry, ReadingCache
from .memory import InMemoryReadingCache
from .redis import RedisReadingCache

__all__ = [
    "CacheEntry",
    "ReadingCache",
    "InMemoryReadingCache",
    "RedisReadingCache",
]

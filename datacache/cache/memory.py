"""
In-memory DataCache backend.

Unbounded dict keyed by the raw key bytes.  Expiry is purely
time-based and lazy: an expired entry is removed the next time it is
looked up, or eagerly by :meth:`InMemoryDataCache.clean`.  Tracks
hit/miss statistics.
"""

import logging
import time
from typing import Dict, Optional

from pydantic import BaseModel

from datacache.cache.base import (
    DataCache,
    Key,
    Value,
    remaining_seconds,
    to_bytes,
)
from datacache.exceptions import ItemNotInCacheError

logger = logging.getLogger(__name__)


class CacheEntry(BaseModel):
    """A single cached value.

    Attributes:
        value: The stored bytes.
        expires_at: Unix timestamp after which the entry is stale, or
            ``None`` if it never expires.
    """

    value: bytes
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class CacheStats(BaseModel):
    """Aggregate cache statistics.

    Attributes:
        hits: Total cache hit count.
        misses: Total cache miss count.
        hit_rate: Ratio of hits to total lookups (0.0 if no lookups).
        entry_count: Current number of entries in the cache, including
            expired entries not yet cleaned.
    """

    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    entry_count: int = 0


class InMemoryDataCache(DataCache):
    """Process-local cache backed by a plain dict.

    Not safe for concurrent use without external locking.

    Args:
        default_ttl: TTL applied when ``set`` is called with ``ttl < 0``.
            Defaults to 0 (never expire).
    """

    def __init__(self, default_ttl: int = 0) -> None:
        self._store: Dict[bytes, CacheEntry] = {}
        self._default_ttl = default_ttl if default_ttl >= 0 else 0
        self._hits: int = 0
        self._misses: int = 0

    def _lookup(self, key: bytes) -> CacheEntry:
        entry = self._store.get(key)
        if entry is None:
            raise ItemNotInCacheError(f"Key {key[:40]!r} not in cache")
        if entry.is_expired(time.time()):
            del self._store[key]
            logger.debug("Cache entry expired", extra={"cache_key": key[:40]})
            raise ItemNotInCacheError(f"Key {key[:40]!r} expired")
        return entry

    def get(self, key: Key) -> bytes:
        try:
            entry = self._lookup(to_bytes(key))
        except ItemNotInCacheError:
            self._misses += 1
            raise
        self._hits += 1
        return entry.value

    def get_remaining_ttl(self, key: Key) -> int:
        entry = self._lookup(to_bytes(key))
        return remaining_seconds(entry.expires_at, time.time())

    def is_in_cache(self, key: Key) -> bool:
        try:
            self._lookup(to_bytes(key))
        except ItemNotInCacheError:
            return False
        return True

    def set(self, key: Key, value: Value, ttl: int = -1) -> None:
        if ttl < 0:
            ttl = self._default_ttl
        expires_at = time.time() + ttl if ttl > 0 else None
        self._store[to_bytes(key)] = CacheEntry(
            value=to_bytes(value, "value"),
            expires_at=expires_at,
        )

    def set_default_ttl(self, ttl: int) -> None:
        if ttl >= 0:
            self._default_ttl = ttl

    def delete(self, key: Key) -> None:
        self._store.pop(to_bytes(key), None)

    def flush(self) -> None:
        count = len(self._store)
        self._store.clear()
        logger.debug("Cache flushed", extra={"entries_removed": count})

    def clean(self) -> None:
        now = time.time()
        expired_keys = [
            key for key, entry in self._store.items() if entry.is_expired(now)
        ]
        for key in expired_keys:
            del self._store[key]

        if expired_keys:
            logger.debug(
                "Expired entries cleaned up",
                extra={"count": len(expired_keys)},
            )

    def stats(self) -> CacheStats:
        """Return aggregate cache statistics."""
        total = self._hits + self._misses
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            hit_rate=self._hits / total if total > 0 else 0.0,
            entry_count=len(self._store),
        )

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @property
    def size(self) -> int:
        """Current number of stored entries."""
        return len(self._store)

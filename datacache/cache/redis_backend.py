"""
Redis-backed DataCache.

Keys are stored as ``<namespace>:<key>`` so several caches can share one
Redis database.  Expiry is delegated to Redis (``SET ... EX``), which
makes :meth:`RedisDataCache.clean` a no-op.

Redis errors are logged and re-raised unchanged.
"""

import logging
import re
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import redis

from datacache.cache.base import DataCache, Key, Value, to_bytes
from datacache.exceptions import InvalidConfigurationError, ItemNotInCacheError

logger = logging.getLogger(__name__)

# No ":" so that one namespace can never be a prefix of another's keys.
_NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_.-]+$")

# Results of the Redis TTL command
_TTL_MISSING = -2
_TTL_PERSISTENT = -1


@contextmanager
def _logged_errors(operation: str, rkey: bytes) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as e:
        logger.error(
            "Redis %s failed",
            operation,
            extra={"cache_key": rkey[:60], "error": str(e)},
        )
        raise


class RedisDataCache(DataCache):
    """Remote cache stored in Redis.

    Args:
        redis_url: Redis connection URL (e.g. redis://localhost:6379/0).
        namespace: Prefix for all keys (default ``datacache``).
        default_ttl: TTL applied when ``set`` is called with ``ttl < 0``.
        _redis_client: Pre-built client, used instead of ``redis_url``.

    Raises:
        InvalidConfigurationError: If the namespace contains characters
            outside ``[A-Za-z0-9_.-]``.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        namespace: str = "datacache",
        default_ttl: int = 0,
        _redis_client: Optional[Any] = None,
    ) -> None:
        if not _NAMESPACE_RE.match(namespace):
            raise InvalidConfigurationError(f"Invalid Redis namespace {namespace!r}")
        if _redis_client is not None:
            self._client = _redis_client
        else:
            self._client = redis.from_url(redis_url, decode_responses=False)
        self._namespace = namespace.encode("ascii") + b":"
        self._default_ttl = default_ttl if default_ttl >= 0 else 0

    def _key(self, key: Key) -> bytes:
        """Return full Redis key for a cache key."""
        return self._namespace + to_bytes(key)

    def get(self, key: Key) -> bytes:
        rkey = self._key(key)
        with _logged_errors("get", rkey):
            data = self._client.get(rkey)
        if data is None:
            raise ItemNotInCacheError(f"Key {to_bytes(key)[:40]!r} not in Redis")
        if isinstance(data, str):
            data = data.encode("utf-8")
        return data

    def get_remaining_ttl(self, key: Key) -> int:
        rkey = self._key(key)
        with _logged_errors("ttl", rkey):
            ttl = self._client.ttl(rkey)
        if ttl == _TTL_MISSING:
            raise ItemNotInCacheError(f"Key {to_bytes(key)[:40]!r} not in Redis")
        if ttl == _TTL_PERSISTENT:
            return 0
        return max(1, int(ttl))

    def is_in_cache(self, key: Key) -> bool:
        rkey = self._key(key)
        with _logged_errors("exists", rkey):
            return bool(self._client.exists(rkey))

    def set(self, key: Key, value: Value, ttl: int = -1) -> None:
        if ttl < 0:
            ttl = self._default_ttl
        rkey = self._key(key)
        data = to_bytes(value, "value")
        with _logged_errors("set", rkey):
            if ttl > 0:
                self._client.set(rkey, data, ex=ttl)
            else:
                self._client.set(rkey, data)

    def set_default_ttl(self, ttl: int) -> None:
        if ttl >= 0:
            self._default_ttl = ttl

    def delete(self, key: Key) -> None:
        rkey = self._key(key)
        with _logged_errors("delete", rkey):
            self._client.delete(rkey)

    def flush(self) -> None:
        """Remove all keys under this cache's namespace."""
        pattern = self._namespace + b"*"
        with _logged_errors("flush", pattern):
            keys = list(self._client.scan_iter(match=pattern))
            if keys:
                self._client.delete(*keys)
        logger.info(
            "Redis cache flushed",
            extra={
                "namespace": self._namespace.decode("ascii"),
                "entries_removed": len(keys),
            },
        )

    def clean(self) -> None:
        # Redis expires keys on its own.
        return None

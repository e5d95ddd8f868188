"""
The DataCache contract shared by every backend, leaf or composite.

A DataCache is a key/value store where items can expire after a number
of seconds.  Keys and values are opaque byte sequences; ``str`` arguments
are accepted and encoded as UTF-8, and values always come back as
``bytes``.

TTL semantics on :meth:`DataCache.set`:

* ``ttl > 0``: the item expires ``ttl`` seconds from now.
* ``ttl == 0``: the item never expires.
* ``ttl < 0``: the cache's current default TTL is used.
"""

import abc
import math
from typing import Optional, Union

Key = Union[str, bytes]
Value = Union[str, bytes]

# Recommended limits; backends may accept more.
REFERENCE_MAX_KEY_LENGTH = 2048
REFERENCE_MAX_VALUE_LENGTH = 32 * 1024 * 1024

# get_remaining_ttl() sentinels
TTL_NEVER_EXPIRES = 0
TTL_UNSUPPORTED = -1


def to_bytes(data: Union[str, bytes], what: str = "key") -> bytes:
    """Normalize a key or value to bytes.

    Raises:
        TypeError: If *data* is neither ``str`` nor ``bytes``.
    """
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    raise TypeError(f"Cache {what} must be str or bytes, got {type(data).__name__}")


def remaining_seconds(expires_at: Optional[float], now: float) -> int:
    """Whole seconds left until *expires_at*, rounded up.

    Returns ``0`` for items that never expire.  A live item with a finite
    expiry always reports at least 1.
    """
    if expires_at is None:
        return TTL_NEVER_EXPIRES
    return max(1, math.ceil(expires_at - now))


class DataCache(abc.ABC):
    """Abstract base class for all caches."""

    @abc.abstractmethod
    def get(self, key: Key) -> bytes:
        """Return the value stored under *key*.

        Raises:
            ItemNotInCacheError: If the key was never set, was deleted,
                or has expired.
        """

    @abc.abstractmethod
    def get_remaining_ttl(self, key: Key) -> int:
        """Return seconds until *key* expires.

        Returns:
            ``0`` if the item never expires, a positive number of seconds
            if it does, or ``-1`` if the cache cannot report it.

        Raises:
            ItemNotInCacheError: Under the same conditions as :meth:`get`.
        """

    @abc.abstractmethod
    def is_in_cache(self, key: Key) -> bool:
        """Return ``True`` if :meth:`get` would succeed for *key*."""

    @abc.abstractmethod
    def set(self, key: Key, value: Value, ttl: int = -1) -> None:
        """Insert or overwrite the entry for *key*."""

    @abc.abstractmethod
    def set_default_ttl(self, ttl: int) -> None:
        """Set the TTL used when :meth:`set` is called with ``ttl < 0``.

        Negative values are ignored.
        """

    @abc.abstractmethod
    def delete(self, key: Key) -> None:
        """Remove the entry for *key*; absent keys are not an error."""

    @abc.abstractmethod
    def flush(self) -> None:
        """Remove every entry reachable through this cache."""

    @abc.abstractmethod
    def clean(self) -> None:
        """Best-effort removal of expired entries (may do nothing)."""

"""
Lazy binding of one tier of a cascade to its DataCache.

A tier entry is either a ready DataCache or a zero-argument factory that
builds one.  Factories are called on first use and the result is
memoized.  When a factory fails or returns something that is not a
DataCache, strict bindings raise :class:`TierConstructionError`;
lenient bindings fall back, permanently, to an empty
:class:`InMemoryDataCache`.
"""

import logging
import threading
from typing import Callable, Optional, Union

from datacache.cache.base import DataCache, Key, to_bytes
from datacache.cache.memory import InMemoryDataCache
from datacache.exceptions import InvalidConfigurationError, TierConstructionError

logger = logging.getLogger(__name__)

CacheFactory = Callable[[], DataCache]
TierEntry = Union[DataCache, CacheFactory]


def build_from_factory(factory: CacheFactory, label: str) -> DataCache:
    """Call *factory* and check that it produced a DataCache.

    Raises:
        TierConstructionError: If the factory raises or returns anything
            other than a DataCache.
    """
    try:
        cache = factory()
    except Exception as e:
        raise TierConstructionError(f"Factory for {label} failed: {e}") from e
    if not isinstance(cache, DataCache):
        raise TierConstructionError(
            f"Factory for {label} did not return a DataCache: "
            f"{type(cache).__name__}"
        )
    return cache


class TierBinding:
    """One tier of a cascade: a key prefix plus a lazily resolved cache.

    Use :meth:`from_entry` to build bindings from user input.

    Args:
        instance: A ready cache, or ``None`` if *factory* is given.
        factory: Zero-argument callable producing the cache.
        prefix: Prepended to every logical key sent to this tier.
        index: Position of the tier in the cascade (for messages).
    """

    def __init__(
        self,
        instance: Optional[DataCache] = None,
        factory: Optional[CacheFactory] = None,
        prefix: Union[str, bytes] = "",
        index: int = 0,
    ) -> None:
        if (instance is None) == (factory is None):
            raise InvalidConfigurationError(
                "Exactly one of instance or factory must be given"
            )
        self._instance = instance
        self._factory = factory
        self._prefix = to_bytes(prefix, "prefix")
        self._index = index
        self._lock = threading.Lock()

    @classmethod
    def from_entry(
        cls, entry: TierEntry, prefix: Union[str, bytes] = "", index: int = 0
    ) -> "TierBinding":
        """Classify a tier-list entry as an instance or a factory.

        Raises:
            InvalidConfigurationError: If *entry* is neither a DataCache
                nor callable, or *prefix* is not ``str``/``bytes``.
        """
        if not isinstance(prefix, (str, bytes)):
            raise InvalidConfigurationError(
                f"Prefix for cache {index} must be str or bytes, "
                f"got {type(prefix).__name__}"
            )
        if isinstance(entry, DataCache):
            return cls(instance=entry, prefix=prefix, index=index)
        if callable(entry):
            return cls(factory=entry, prefix=prefix, index=index)
        raise InvalidConfigurationError(
            f"Element {index} is neither a DataCache nor a callable"
        )

    @property
    def prefix(self) -> bytes:
        return self._prefix

    @property
    def index(self) -> int:
        return self._index

    @property
    def is_resolved(self) -> bool:
        return self._instance is not None

    def key(self, key: Key) -> bytes:
        """Return the physical key used for *key* on this tier."""
        return self._prefix + to_bytes(key)

    def resolve(self, strict: bool = True, default_ttl: int = 0) -> DataCache:
        """Return this tier's cache, building it on first use.

        A lenient substitute is created with *default_ttl* so it expires
        items like the other tiers.

        Raises:
            TierConstructionError: In strict mode, if the factory fails.
                The binding stays unresolved and the next call tries again.
        """
        instance = self._instance
        if instance is not None:
            return instance

        with self._lock:
            if self._instance is not None:
                return self._instance
            try:
                instance = build_from_factory(self._factory, f"cache {self._index}")
            except TierConstructionError as e:
                if strict:
                    raise
                logger.warning(
                    "Tier construction failed, using in-memory substitute",
                    extra={"tier": self._index, "error": str(e)},
                )
                instance = InMemoryDataCache(default_ttl=default_ttl)
            self._instance = instance
            self._factory = None
            logger.debug("Tier resolved", extra={"tier": self._index})
            return instance

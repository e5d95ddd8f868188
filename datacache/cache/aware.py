"""
Cache handle for objects that can optionally use a cache.

A host object owns a :class:`CacheHandle` and consults it before
caching anything::

    class ReportBuilder:
        def __init__(self) -> None:
            self.cache = CacheHandle()

        def build(self, report_id: str) -> bytes:
            if self.cache.is_enabled():
                ...self.cache.backend().get(report_id)...
"""

import logging
import threading
from typing import Optional

from datacache.cache.base import DataCache
from datacache.cache.tiers import CacheFactory, TierEntry, build_from_factory
from datacache.exceptions import InvalidConfigurationError, NoCacheAvailableError

logger = logging.getLogger(__name__)


class CacheHandle:
    """On/off switch plus an eager or lazily built DataCache.

    The handle starts disabled.  A factory passed to :meth:`set_backend`
    is called on the first :meth:`backend` call and its result reused.

    Args:
        backend: Optional DataCache or factory to start with.
        enabled: Initial state of the switch.
    """

    def __init__(
        self, backend: Optional[TierEntry] = None, enabled: bool = False
    ) -> None:
        self._cache: Optional[DataCache] = None
        self._factory: Optional[CacheFactory] = None
        self._enabled = enabled
        self._lock = threading.Lock()
        if backend is not None:
            self.set_backend(backend)

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def set_backend(self, backend: TierEntry) -> None:
        """Replace the cache with an instance or a factory.

        Raises:
            InvalidConfigurationError: If *backend* is neither a DataCache
                nor callable.
        """
        if isinstance(backend, DataCache):
            self._cache, self._factory = backend, None
        elif callable(backend):
            self._cache, self._factory = None, backend
        else:
            raise InvalidConfigurationError(
                f"Cache backend must be a DataCache or a callable, "
                f"got {type(backend).__name__}"
            )

    def is_enabled(self) -> bool:
        """True if switched on and a cache or factory is available."""
        if self._cache is None and self._factory is None:
            return False
        return self._enabled

    def backend(self) -> DataCache:
        """Return the cache, building it from the factory if needed.

        Raises:
            NoCacheAvailableError: If no cache or factory has been set.
            TierConstructionError: If the factory fails or returns
                something other than a DataCache.
        """
        cache = self._cache
        if cache is not None:
            return cache
        with self._lock:
            if self._cache is None:
                if self._factory is None:
                    raise NoCacheAvailableError("No DataCache instance available")
                self._cache = build_from_factory(self._factory, "cache handle")
                self._factory = None
                logger.debug("Cache handle resolved")
            return self._cache

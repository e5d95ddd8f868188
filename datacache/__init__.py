"""
datacache: string-keyed caches with TTLs and a multi-tier cascade.

Typical use::

    from datacache import InMemoryDataCache, DirectoryDataCache, MultiCacheDataCache

    cache = MultiCacheDataCache(
        [InMemoryDataCache(), lambda: DirectoryDataCache("/var/cache/app")],
        prefixes=["", "app:"],
    )
    cache.set("answer", b"42", ttl=3600)
"""

from datacache.cache import (
    CacheEntry,
    CacheHandle,
    CacheStats,
    CascadeStats,
    DataCache,
    DirectoryDataCache,
    InMemoryDataCache,
    MultiCacheDataCache,
    RedisDataCache,
    TierBinding,
)
from datacache.exceptions import (
    DataCacheException,
    InvalidConfigurationError,
    ItemNotInCacheError,
    NoCacheAvailableError,
    TierConstructionError,
)
from datacache.factory import build_data_cache

__version__ = "1.0.0"

__all__ = [
    "CacheEntry",
    "CacheHandle",
    "CacheStats",
    "CascadeStats",
    "DataCache",
    "DataCacheException",
    "DirectoryDataCache",
    "InMemoryDataCache",
    "InvalidConfigurationError",
    "ItemNotInCacheError",
    "MultiCacheDataCache",
    "NoCacheAvailableError",
    "RedisDataCache",
    "TierBinding",
    "TierConstructionError",
    "build_data_cache",
]

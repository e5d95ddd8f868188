"""DataCache contract, leaf backends and the multi-tier cascade."""

from datacache.cache.aware import CacheHandle
from datacache.cache.base import DataCache
from datacache.cache.directory import DirectoryDataCache
from datacache.cache.memory import CacheEntry, CacheStats, InMemoryDataCache
from datacache.cache.multi import CascadeStats, MultiCacheDataCache
from datacache.cache.redis_backend import RedisDataCache
from datacache.cache.tiers import TierBinding

__all__ = [
    "CacheEntry",
    "CacheHandle",
    "CacheStats",
    "CascadeStats",
    "DataCache",
    "DirectoryDataCache",
    "InMemoryDataCache",
    "MultiCacheDataCache",
    "RedisDataCache",
    "TierBinding",
]

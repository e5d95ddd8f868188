"""
Build a cascade from :class:`~datacache.config.Settings`.

Every tier listed under ``cache.tiers`` becomes a lazy factory, so a
backend that is never touched (e.g. Redis in a test run) is never
connected to.
"""

import functools
import logging
from typing import Callable, Dict, List, Optional

from datacache.cache.base import DataCache
from datacache.cache.directory import DirectoryDataCache
from datacache.cache.memory import InMemoryDataCache
from datacache.cache.multi import MultiCacheDataCache
from datacache.cache.redis_backend import RedisDataCache
from datacache.config import Settings, get_settings
from datacache.exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)


def _memory(settings: Settings) -> DataCache:
    return InMemoryDataCache(default_ttl=settings.cache.default_ttl)


def _directory(settings: Settings) -> DataCache:
    d = settings.directory
    return DirectoryDataCache(
        d.path,
        cache_name=d.cache_name,
        file_extension=d.file_extension,
        separator=d.separator,
        default_ttl=settings.cache.default_ttl,
    )


def _redis(settings: Settings) -> DataCache:
    return RedisDataCache(
        redis_url=settings.redis.url,
        namespace=settings.redis.namespace,
        default_ttl=settings.cache.default_ttl,
    )


BACKENDS: Dict[str, Callable[[Settings], DataCache]] = {
    "memory": _memory,
    "directory": _directory,
    "redis": _redis,
}


def build_data_cache(settings: Optional[Settings] = None) -> MultiCacheDataCache:
    """Create a :class:`MultiCacheDataCache` from ``settings.cache.tiers``.

    Args:
        settings: Settings to use; defaults to :func:`get_settings`.

    Returns:
        A cascade whose tiers are built on first use.

    Raises:
        InvalidConfigurationError: If a tier names an unknown backend.
    """
    settings = settings or get_settings()
    factories: List[Callable[[], DataCache]] = []
    prefixes: List[str] = []
    for i, tier in enumerate(settings.cache.tiers):
        name = str(tier.get("backend", "")).lower()
        builder = BACKENDS.get(name)
        if builder is None:
            raise InvalidConfigurationError(
                f"Unknown backend {name!r} for tier {i}; "
                f"expected one of {sorted(BACKENDS)}"
            )
        factories.append(functools.partial(builder, settings))
        prefixes.append(tier.get("prefix") or "")

    logger.info(
        "Building cascade",
        extra={
            "tiers": [t.get("backend") for t in settings.cache.tiers],
            "strict": settings.cache.strict,
        },
    )
    return MultiCacheDataCache(
        factories,
        prefixes,
        strict=settings.cache.strict,
        default_ttl=settings.cache.default_ttl,
    )

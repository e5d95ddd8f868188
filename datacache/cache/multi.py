"""
Cascading multi-tier DataCache.

Composes an ordered list of caches into one logical cache:

* ``set`` writes to every tier.
* ``get`` reads from the first tier that has the item and backfills the
  tiers before it that missed, using the remaining TTL reported by the
  tier that hit.  A tier that cannot report its remaining TTL does not
  trigger a backfill.
* ``delete``, ``flush``, ``clean`` and ``set_default_ttl`` fan out to
  every tier.

Each tier has its own key prefix so that tiers may share a physical
namespace (e.g. one Redis database or one directory).
"""

import logging
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from datacache.cache.base import TTL_UNSUPPORTED, DataCache, Key, Value
from datacache.cache.tiers import TierBinding, TierEntry
from datacache.exceptions import InvalidConfigurationError, ItemNotInCacheError

logger = logging.getLogger(__name__)


class CascadeStats(BaseModel):
    """Counters for a :class:`MultiCacheDataCache`.

    Attributes:
        tier_hits: Number of cascade reads served by each tier.
        misses: Number of cascade reads no tier could serve.
        backfills: Number of individual backfill writes performed.
    """

    tier_hits: List[int] = Field(default_factory=list)
    misses: int = 0
    backfills: int = 0


class MultiCacheDataCache(DataCache):
    """A DataCache made of an ordered list of DataCaches.

    Tier order is fixed at construction and is the read priority: the
    lowest index that has an item serves it.

    Args:
        caches: DataCache instances or zero-argument callables that build
            one on first use.
        prefixes: Key prefix per tier.  Missing or ``None`` entries mean
            no prefix.
        strict: If ``True`` (default), a factory that fails or returns
            something other than a DataCache makes the triggering
            operation raise :class:`TierConstructionError`.  Otherwise an
            empty :class:`InMemoryDataCache` takes its place.
        default_ttl: Default TTL the tiers are known to use.  Lenient
            substitutes are created with it; it is not pushed to the
            tiers (use :meth:`set_default_ttl` for that).

    Raises:
        InvalidConfigurationError: If an entry is neither a DataCache nor
            a callable, a prefix is not ``str``/``bytes``, or there are
            more prefixes than caches.  Checked regardless of *strict*.
    """

    def __init__(
        self,
        caches: Sequence[TierEntry],
        prefixes: Optional[Sequence[Optional[Union[str, bytes]]]] = None,
        strict: bool = True,
        default_ttl: Optional[int] = None,
    ) -> None:
        prefixes = list(prefixes or [])
        if len(prefixes) > len(caches):
            raise InvalidConfigurationError(
                f"Got {len(prefixes)} prefixes for {len(caches)} caches"
            )
        self._tiers: List[TierBinding] = []
        for i, entry in enumerate(caches):
            prefix = prefixes[i] if i < len(prefixes) else None
            self._tiers.append(
                TierBinding.from_entry(entry, "" if prefix is None else prefix, i)
            )
        self._strict = strict
        self._default_ttl: Optional[int] = (
            default_ttl if default_ttl is not None and default_ttl >= 0 else None
        )
        self._tier_hits = [0] * len(self._tiers)
        self._misses = 0
        self._backfills = 0

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def tier_count(self) -> int:
        return len(self._tiers)

    @property
    def default_ttl(self) -> Optional[int]:
        """Default TTL of the tiers, or ``None`` if never given or set."""
        return self._default_ttl

    def _resolve(self, tier: TierBinding) -> DataCache:
        return tier.resolve(self._strict, self._default_ttl or 0)

    def get_tier(self, index: int) -> DataCache:
        """Return the cache behind tier *index*, building it if needed."""
        return self._resolve(self._tiers[index])

    def get(self, key: Key) -> bytes:
        missed: List[TierBinding] = []
        for tier in self._tiers:
            cache = self._resolve(tier)
            try:
                data = cache.get(tier.key(key))
            except ItemNotInCacheError:
                missed.append(tier)
                continue

            self._tier_hits[tier.index] += 1
            if missed:
                self._backfill(key, data, tier, cache, missed)
            return data

        self._misses += 1
        raise ItemNotInCacheError(f"Key {key!r} not in any cache tier")

    def _backfill(
        self,
        key: Key,
        data: bytes,
        source: TierBinding,
        source_cache: DataCache,
        missed: List[TierBinding],
    ) -> None:
        """Copy *data* into the tiers that missed it."""
        try:
            ttl = source_cache.get_remaining_ttl(source.key(key))
        except ItemNotInCacheError:
            # expired between the get and the TTL lookup
            return
        if ttl < 0:
            return
        for tier in missed:
            self._resolve(tier).set(tier.key(key), data, ttl)
            self._backfills += 1
        logger.debug(
            "Backfilled cache tiers",
            extra={
                "source_tier": source.index,
                "tiers": [t.index for t in missed],
                "ttl": ttl,
            },
        )

    def is_in_cache(self, key: Key) -> bool:
        # Goes through get(), so a hit in a later tier backfills earlier ones.
        try:
            self.get(key)
        except ItemNotInCacheError:
            return False
        return True

    def set(self, key: Key, value: Value, ttl: int = -1) -> None:
        for tier in self._tiers:
            self._resolve(tier).set(tier.key(key), value, ttl)

    def set_default_ttl(self, ttl: int) -> None:
        if ttl < 0:
            return
        for tier in self._tiers:
            self._resolve(tier).set_default_ttl(ttl)
        self._default_ttl = ttl

    def delete(self, key: Key) -> None:
        for tier in self._tiers:
            self._resolve(tier).delete(tier.key(key))

    def flush(self) -> None:
        for tier in self._tiers:
            self._resolve(tier).flush()

    def clean(self) -> None:
        for tier in self._tiers:
            self._resolve(tier).clean()

    def get_remaining_ttl(self, key: Key) -> int:
        """Always ``-1``: the cascade does not track which tier is authoritative."""
        return TTL_UNSUPPORTED

    def stats(self) -> CascadeStats:
        return CascadeStats(
            tier_hits=list(self._tier_hits),
            misses=self._misses,
            backfills=self._backfills,
        )

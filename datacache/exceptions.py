"""
datacache exception hierarchy.

All custom exceptions inherit from DataCacheException so callers can
catch a single base type when they want a broad safety net.
"""


class DataCacheException(Exception):
    """Base exception for all datacache errors."""


class ItemNotInCacheError(DataCacheException, KeyError):
    """Raised when a key is absent, was deleted, or has expired.

    This is an expected outcome, not a fault: callers treat it as a
    normal negative lookup result.
    """

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Item not in cache"


class InvalidConfigurationError(DataCacheException, ValueError):
    """Raised when a cache or settings configuration is structurally invalid."""


class TierConstructionError(DataCacheException, RuntimeError):
    """Raised when a lazily constructed cache cannot be built.

    Either the factory raised or it returned something that is not a
    DataCache.
    """


class NoCacheAvailableError(DataCacheException, RuntimeError):
    """Raised when a cache handle is asked for a backend it does not have."""

"""Tests for CacheHandle."""

import pytest

from datacache.cache.aware import CacheHandle
from datacache.cache.base import DataCache
from datacache.cache.memory import InMemoryDataCache
from datacache.exceptions import (
    InvalidConfigurationError,
    NoCacheAvailableError,
    TierConstructionError,
)


class ReportBuilder:
    """Host object that caches through a handle."""

    def __init__(self) -> None:
        self.cache = CacheHandle()

    def cache_set(self, key: str, data: bytes) -> bool:
        if self.cache.is_enabled():
            self.cache.backend().set(key, data)
            return True
        return False


class TestBasicBehaviour:
    def test_switch_and_backend(self) -> None:
        host = ReportBuilder()
        cache = InMemoryDataCache()

        assert host.cache_set("TestKey", b"MyValue") is False
        with pytest.raises(NoCacheAvailableError):
            host.cache.backend()

        host.cache.set_backend(cache)
        assert host.cache_set("TestKey", b"MyValue") is False
        assert cache.is_in_cache("TestKey") is False

        host.cache.enable()
        assert host.cache_set("TestKey", b"MyValue") is True
        assert cache.is_in_cache("TestKey") is True
        cache.delete("TestKey")

        host.cache.disable()
        assert host.cache_set("TestKey", b"MyValue") is False
        assert cache.is_in_cache("TestKey") is False

    def test_enabled_without_backend_is_not_enabled(self) -> None:
        handle = CacheHandle(enabled=True)
        assert handle.is_enabled() is False

    def test_constructor_backend(self) -> None:
        cache = InMemoryDataCache()
        handle = CacheHandle(cache, enabled=True)
        assert handle.is_enabled() is True
        assert handle.backend() is cache

    def test_invalid_backend(self) -> None:
        with pytest.raises(InvalidConfigurationError):
            CacheHandle().set_backend(42)  # type: ignore[arg-type]


class TestFactories:
    def test_factory_resolved_once(self) -> None:
        calls = []

        def factory() -> InMemoryDataCache:
            calls.append(1)
            return InMemoryDataCache()

        handle = CacheHandle()
        handle.set_backend(factory)
        handle.enable()
        assert handle.is_enabled() is True
        assert calls == []
        first = handle.backend()
        assert isinstance(first, DataCache)
        assert handle.backend() is first
        assert calls == [1]

    def test_bad_factory(self) -> None:
        handle = CacheHandle()
        handle.set_backend(lambda: "bad bad callable")
        with pytest.raises(TierConstructionError):
            handle.backend()

    def test_replacing_backend_drops_resolved_cache(self) -> None:
        handle = CacheHandle(InMemoryDataCache())
        replacement = InMemoryDataCache()
        handle.set_backend(lambda: replacement)
        assert handle.backend() is replacement

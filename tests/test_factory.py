"""Tests for building a cascade from settings."""

import time

import fakeredis
import pytest

from datacache import factory
from datacache.cache.directory import DirectoryDataCache
from datacache.cache.memory import InMemoryDataCache
from datacache.cache.multi import MultiCacheDataCache
from datacache.cache.redis_backend import RedisDataCache
from datacache.config import Settings
from datacache.exceptions import InvalidConfigurationError, ItemNotInCacheError


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings()
    s.directory.path = str(tmp_path / "cache")
    s.cache.tiers = [
        {"backend": "memory", "prefix": ""},
        {"backend": "directory", "prefix": "d:"},
    ]
    return s


class TestBuildDataCache:
    def test_builds_lazy_cascade(self, settings: Settings, tmp_path) -> None:
        multi = factory.build_data_cache(settings)
        assert isinstance(multi, MultiCacheDataCache)
        assert multi.tier_count == 2
        assert not (tmp_path / "cache").exists()

        multi.set("k", b"v")
        assert isinstance(multi.get_tier(0), InMemoryDataCache)
        assert isinstance(multi.get_tier(1), DirectoryDataCache)
        assert multi.get_tier(1).get("d:k") == b"v"

    def test_default_ttl_passed_to_backends(self, settings: Settings) -> None:
        settings.cache.default_ttl = 120
        multi = factory.build_data_cache(settings)
        multi.set("k", b"v")
        assert 119 <= multi.get_tier(0).get_remaining_ttl("k") <= 120
        assert 119 <= multi.get_tier(1).get_remaining_ttl("d:k") <= 120

    def test_strict_flag_passed(self, settings: Settings) -> None:
        settings.cache.strict = False
        assert factory.build_data_cache(settings).strict is False

    def test_unknown_backend(self, settings: Settings) -> None:
        settings.cache.tiers = [{"backend": "memcached"}]
        with pytest.raises(InvalidConfigurationError, match="memcached"):
            factory.build_data_cache(settings)

    def test_redis_tier(self, settings: Settings, monkeypatch) -> None:
        client = fakeredis.FakeStrictRedis()
        monkeypatch.setattr(
            "datacache.cache.redis_backend.redis.from_url",
            lambda url, **kwargs: client,
        )
        settings.cache.tiers = [{"backend": "redis", "prefix": "r:"}]
        settings.redis.namespace = "app"
        multi = factory.build_data_cache(settings)
        multi.set("k", b"v")
        assert isinstance(multi.get_tier(0), RedisDataCache)
        assert client.get(b"app:r:k") == b"v"

    def test_broken_directory_config_lenient(self, settings: Settings) -> None:
        settings.directory.cache_name = "bad name"
        settings.cache.strict = False
        multi = factory.build_data_cache(settings)
        multi.set("k", b"v")
        assert type(multi.get_tier(1)) is InMemoryDataCache

    def test_lenient_substitute_uses_default_ttl(self, settings: Settings) -> None:
        settings.directory.separator = "/"
        settings.cache.strict = False
        settings.cache.default_ttl = 1
        settings.cache.tiers = [
            {"backend": "directory", "prefix": "d:"},
            {"backend": "memory", "prefix": ""},
        ]
        multi = factory.build_data_cache(settings)
        assert multi.default_ttl == 1

        multi.set("k", b"v")
        substitute = multi.get_tier(0)
        assert type(substitute) is InMemoryDataCache
        assert substitute.default_ttl == 1
        assert substitute.get_remaining_ttl("d:k") == 1

        time.sleep(1.5)
        with pytest.raises(ItemNotInCacheError):
            substitute.get("d:k")
        assert multi.is_in_cache("k") is False

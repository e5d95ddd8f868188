"""Tests for the central configuration loader (datacache/config.py)."""

from pathlib import Path

import pytest
import yaml

from datacache.config import (
    CacheSettings,
    DirectorySettings,
    LoggingSettings,
    RedisSettings,
    Settings,
    _apply_dict,
    _apply_env_overrides,
    _load_yaml,
    get_settings,
    reset_settings,
)
from datacache.exceptions import InvalidConfigurationError


@pytest.fixture(autouse=True)
def _clean_settings():
    """Reset the singleton before and after each test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def no_env(tmp_path) -> Path:
    return tmp_path / "missing.env"


# ── YAML loading ────────────────────────────────────────


class TestLoadYaml:
    def test_loads_valid_yaml(self, tmp_path):
        f = tmp_path / "cfg.yaml"
        f.write_text("cache:\n  default_ttl: 60\n")
        data = _load_yaml(f)
        assert data["cache"]["default_ttl"] == 60

    def test_returns_empty_dict_for_missing_file(self, tmp_path):
        data = _load_yaml(tmp_path / "nonexistent.yaml")
        assert data == {}

    def test_returns_empty_dict_for_non_dict_yaml(self, tmp_path):
        f = tmp_path / "cfg.yaml"
        f.write_text("- item1\n- item2\n")
        data = _load_yaml(f)
        assert data == {}

    def test_invalid_yaml_raises(self, tmp_path):
        f = tmp_path / "cfg.yaml"
        f.write_text("cache: [unclosed\n")
        with pytest.raises(InvalidConfigurationError):
            _load_yaml(f)


# ── Settings defaults ───────────────────────────────────


class TestSettingsDefaults:
    def test_default_settings_have_expected_values(self):
        s = Settings()
        assert s.cache.default_ttl == 0
        assert s.cache.strict is True
        assert s.cache.tiers == [{"backend": "memory", "prefix": ""}]
        assert s.directory.separator == "-"
        assert s.redis.namespace == "datacache"
        assert s.logging.level == "INFO"

    def test_tiers_default_not_shared(self):
        a, b = CacheSettings(), CacheSettings()
        a.tiers.append({"backend": "redis"})
        assert len(b.tiers) == 1

    def test_apply_dict_ignores_unknown_keys(self):
        section = RedisSettings()
        _apply_dict(section, {"namespace": "app", "bogus": 1})
        assert section.namespace == "app"
        assert not hasattr(section, "bogus")


# ── get_settings() from YAML ────────────────────────────


class TestGetSettings:
    def _write_config(self, tmp_path, data):
        f = tmp_path / "config.yaml"
        f.write_text(yaml.dump(data))
        return f

    def test_loads_yaml_values(self, tmp_path, no_env):
        cfg = self._write_config(tmp_path, {
            "cache": {
                "default_ttl": 1234,
                "strict": False,
                "tiers": [{"backend": "memory"}, {"backend": "directory", "prefix": "d:"}],
            },
            "directory": {"cache_name": "App"},
        })
        s = get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)
        assert s.cache.default_ttl == 1234
        assert s.cache.strict is False
        assert len(s.cache.tiers) == 2
        assert s.directory.cache_name == "App"

    def test_missing_yaml_uses_defaults(self, tmp_path, no_env):
        s = get_settings(yaml_path=tmp_path / "nope.yaml", env_path=no_env, _force_reload=True)
        assert s.cache.default_ttl == 0

    def test_singleton_returns_same_object(self, tmp_path, no_env):
        cfg = self._write_config(tmp_path, {"cache": {"default_ttl": 5}})
        s1 = get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)
        s2 = get_settings()
        assert s1 is s2

    def test_force_reload_reloads(self, tmp_path, no_env):
        cfg = self._write_config(tmp_path, {"cache": {"default_ttl": 1111}})
        s1 = get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)
        assert s1.cache.default_ttl == 1111

        cfg.write_text(yaml.dump({"cache": {"default_ttl": 2222}}))
        s2 = get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)
        assert s2.cache.default_ttl == 2222

    def test_empty_tier_list_rejected(self, tmp_path, no_env):
        cfg = self._write_config(tmp_path, {"cache": {"tiers": []}})
        with pytest.raises(InvalidConfigurationError):
            get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)

    def test_tier_without_backend_rejected(self, tmp_path, no_env):
        cfg = self._write_config(tmp_path, {"cache": {"tiers": [{"prefix": "x"}]}})
        with pytest.raises(InvalidConfigurationError):
            get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)

    def test_negative_default_ttl_rejected(self, tmp_path, no_env):
        cfg = self._write_config(tmp_path, {"cache": {"default_ttl": -5}})
        with pytest.raises(InvalidConfigurationError):
            get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)

    @pytest.mark.parametrize("value", ["3600", 1.5, True])
    def test_non_integer_default_ttl_rejected(self, tmp_path, no_env, value):
        cfg = self._write_config(tmp_path, {"cache": {"default_ttl": value}})
        with pytest.raises(InvalidConfigurationError, match="default_ttl"):
            get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)

    @pytest.mark.parametrize("value", ["no", "yes", 1])
    def test_non_boolean_strict_rejected(self, tmp_path, no_env, value):
        cfg = self._write_config(tmp_path, {"cache": {"strict": value}})
        with pytest.raises(InvalidConfigurationError, match="strict"):
            get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)

    def test_dotenv_file_is_loaded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATACACHE_REDIS_NAMESPACE", "preexisting")
        env = tmp_path / ".env"
        env.write_text("DATACACHE_REDIS_NAMESPACE=fromdotenv\n")
        s = get_settings(yaml_path=tmp_path / "nope.yaml", env_path=env, _force_reload=True)
        assert s.redis.namespace == "fromdotenv"


# ── Environment variable overrides ──────────────────────


class TestEnvOverrides:
    def test_env_override_int(self, monkeypatch):
        monkeypatch.setenv("DATACACHE_CACHE_DEFAULT_TTL", "3600")
        s = Settings()
        _apply_env_overrides(s)
        assert s.cache.default_ttl == 3600

    def test_env_override_bool(self, monkeypatch):
        monkeypatch.setenv("DATACACHE_CACHE_STRICT", "false")
        s = Settings()
        _apply_env_overrides(s)
        assert s.cache.strict is False

    def test_env_override_str(self, monkeypatch):
        monkeypatch.setenv("DATACACHE_DIRECTORY_PATH", "/var/cache/app")
        s = Settings()
        _apply_env_overrides(s)
        assert s.directory.path == "/var/cache/app"

    def test_invalid_env_override_ignored(self, monkeypatch):
        monkeypatch.setenv("DATACACHE_CACHE_DEFAULT_TTL", "soon")
        s = Settings()
        _apply_env_overrides(s)
        assert s.cache.default_ttl == 0

    def test_list_fields_not_overridden(self, monkeypatch):
        monkeypatch.setenv("DATACACHE_CACHE_TIERS", "redis")
        s = Settings()
        _apply_env_overrides(s)
        assert s.cache.tiers == [{"backend": "memory", "prefix": ""}]

    def test_env_beats_yaml(self, tmp_path, no_env, monkeypatch):
        cfg = tmp_path / "config.yaml"
        cfg.write_text(yaml.dump({"logging": {"level": "DEBUG"}}))
        monkeypatch.setenv("DATACACHE_LOGGING_LEVEL", "WARNING")
        s = get_settings(yaml_path=cfg, env_path=no_env, _force_reload=True)
        assert s.logging.level == "WARNING"


def test_section_types():
    s = Settings()
    assert isinstance(s.directory, DirectorySettings)
    assert isinstance(s.logging, LoggingSettings)

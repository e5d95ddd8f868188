"""
Central configuration loader for datacache.

Reads ``config/config.yaml`` and ``.env``, merges environment-variable
overrides (``DATACACHE_`` prefix), and exposes a typed :class:`Settings`
singleton via :func:`get_settings`.
"""

import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from datacache.exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Resolve project root (directory containing ``config/``)
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent          # datacache/
_PROJECT_ROOT = _THIS_DIR.parent                     # repo root


def _project_path(*parts: str) -> Path:
    """Build an absolute path relative to the project root."""
    return _PROJECT_ROOT.joinpath(*parts)


# ---------------------------------------------------------------------------
# Nested settings dataclasses
# ---------------------------------------------------------------------------


@dataclass
class CacheSettings:
    default_ttl: int = 0
    strict: bool = True
    tiers: List[Dict[str, Any]] = field(default_factory=lambda: [
        {"backend": "memory", "prefix": ""},
    ])


@dataclass
class DirectorySettings:
    path: str = field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "datacache")
    )
    cache_name: str = "DataCache"
    file_extension: str = "txt"
    separator: str = "-"


@dataclass
class RedisSettings:
    url: str = "redis://localhost:6379/0"
    namespace: str = "datacache"


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str = ""


@dataclass
class Settings:
    """Top-level settings container."""
    cache: CacheSettings = field(default_factory=CacheSettings)
    directory: DirectorySettings = field(default_factory=DirectorySettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# YAML loader
# ---------------------------------------------------------------------------

def _load_yaml(path: Path) -> Dict[str, Any]:
    """Read and parse a YAML file.  Returns ``{}`` if the file is missing.

    Raises:
        InvalidConfigurationError: If the file is not valid YAML.
    """
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(f"Cannot parse {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def _apply_dict(target: object, data: Dict[str, Any]) -> None:
    """Apply *data* values onto a dataclass instance, ignoring unknown keys."""
    for key, value in data.items():
        if not hasattr(target, key):
            logger.warning("Unknown config key ignored: %s", key)
            continue
        setattr(target, key, value)


# ---------------------------------------------------------------------------
# Env-var overrides  (DATACACHE_SECTION_KEY  e.g. DATACACHE_CACHE_DEFAULT_TTL)
# ---------------------------------------------------------------------------

_SECTIONS = ["cache", "directory", "redis", "logging"]

_TYPE_MAP = {
    int: int,
    float: float,
    bool: lambda v: v.lower() in ("1", "true", "yes"),
    str: str,
}


def _apply_env_overrides(settings: Settings) -> None:
    """Override scalar fields via ``DATACACHE_<SECTION>_<KEY>`` env vars."""
    for section_name in _SECTIONS:
        section = getattr(settings, section_name)
        prefix = f"DATACACHE_{section_name.upper()}_"
        for key in list(vars(section)):
            env_key = prefix + key.upper()
            env_val = os.environ.get(env_key)
            if env_val is None:
                continue
            current = getattr(section, key)
            cast = _TYPE_MAP.get(type(current))
            if cast is None:
                logger.warning("Env override not supported for %s", env_key)
                continue
            try:
                setattr(section, key, cast(env_val))
                logger.debug("Env override applied: %s=%s", env_key, env_val)
            except (ValueError, TypeError):
                logger.warning("Invalid env override %s=%s", env_key, env_val)


def _validate(settings: Settings) -> None:
    """Reject settings no cache could be built from."""
    tiers = settings.cache.tiers
    if not isinstance(tiers, list) or not tiers:
        raise InvalidConfigurationError("cache.tiers must be a non-empty list")
    for i, tier in enumerate(tiers):
        if not isinstance(tier, dict) or "backend" not in tier:
            raise InvalidConfigurationError(
                f"cache.tiers[{i}] must be a mapping with a 'backend' key"
            )
    default_ttl = settings.cache.default_ttl
    if not isinstance(default_ttl, int) or isinstance(default_ttl, bool):
        raise InvalidConfigurationError(
            f"cache.default_ttl must be an integer, got {default_ttl!r}"
        )
    if default_ttl < 0:
        raise InvalidConfigurationError("cache.default_ttl must be >= 0")
    if not isinstance(settings.cache.strict, bool):
        raise InvalidConfigurationError(
            f"cache.strict must be true or false, got {settings.cache.strict!r}"
        )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Optional[Settings] = None
_lock = threading.Lock()


def get_settings(
    *,
    yaml_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    _force_reload: bool = False,
) -> Settings:
    """Return the application-wide :class:`Settings` singleton.

    On first call (or when ``_force_reload=True``) the function:

    1. Calls ``load_dotenv()`` to populate env vars from ``.env``.
    2. Reads ``config/config.yaml``.
    3. Applies ``DATACACHE_*`` environment-variable overrides.

    Args:
        yaml_path: Override the YAML config file path (testing).
        env_path: Override the ``.env`` file path (testing).
        _force_reload: Re-read everything even if already loaded.

    Returns:
        The global ``Settings`` instance.

    Raises:
        InvalidConfigurationError: If the merged settings are invalid.
    """
    global _settings

    if _settings is not None and not _force_reload:
        return _settings

    with _lock:
        # Double-check after acquiring lock
        if _settings is not None and not _force_reload:
            return _settings

        # 1. Load .env
        dotenv_path = env_path or _project_path(".env")
        load_dotenv(dotenv_path, override=True)

        # 2. Read YAML
        config_path = yaml_path or _project_path("config", "config.yaml")
        raw = _load_yaml(config_path)

        # 3. Build Settings with defaults, then overlay YAML values
        settings = Settings()
        for section_name in _SECTIONS:
            section_data = raw.get(section_name)
            if isinstance(section_data, dict):
                _apply_dict(getattr(settings, section_name), section_data)

        # 4. Apply DATACACHE_* env-var overrides
        _apply_env_overrides(settings)
        _validate(settings)

        _settings = settings
        logger.info("Settings loaded from %s", config_path)
        return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for testing)."""
    global _settings
    with _lock:
        _settings = None

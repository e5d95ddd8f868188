"""
File-backed DataCache backend.

Each item lives in its own file inside a directory::

    <cache_name><separator><sha256(key)>[.<file_extension>]

Hashing the key keeps file names short and filesystem-safe whatever
bytes the key contains.  The file starts with an ASCII line holding the
expiry timestamp (``0`` for never) followed by the raw value bytes.
Several caches can share a directory as long as their names differ.
"""

import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from datacache.cache.base import (
    DataCache,
    Key,
    Value,
    remaining_seconds,
    to_bytes,
)
from datacache.exceptions import InvalidConfigurationError, ItemNotInCacheError

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_FORBIDDEN_SEPARATORS = {"/", "\\", "*", os.sep}


def _validate(cache_name: str, file_extension: str, separator: str) -> None:
    """Check the file naming parameters.

    Raises:
        InvalidConfigurationError: On any invalid combination.
    """
    if len(separator) != 1 or separator in _FORBIDDEN_SEPARATORS:
        raise InvalidConfigurationError(f"Invalid separator {separator!r}")
    if separator == "." and file_extension:
        raise InvalidConfigurationError(
            "'.' can only be used as separator when there is no file extension"
        )
    if not _NAME_RE.match(cache_name) or separator in cache_name:
        raise InvalidConfigurationError(f"Invalid cache name {cache_name!r}")
    if file_extension and (
        not _NAME_RE.match(file_extension) or separator in file_extension
    ):
        raise InvalidConfigurationError(
            f"Invalid file extension {file_extension!r}"
        )


class DirectoryDataCache(DataCache):
    """Cache that persists items as files in a directory.

    Args:
        directory: Directory holding the cache files; created if missing.
        cache_name: Name used as the file name prefix.
        file_extension: Extension without the dot; empty for none.
        separator: Single character between the name and the key hash.
        default_ttl: TTL applied when ``set`` is called with ``ttl < 0``.

    Raises:
        InvalidConfigurationError: If the naming parameters are invalid.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        cache_name: str = "DataCache",
        file_extension: str = "txt",
        separator: str = "-",
        default_ttl: int = 0,
    ) -> None:
        _validate(cache_name, file_extension, separator)
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._prefix = cache_name + separator
        self._suffix = f".{file_extension}" if file_extension else ""
        self._default_ttl = default_ttl if default_ttl >= 0 else 0
        logger.debug(
            "Directory cache ready",
            extra={"directory": str(self._directory), "cache_name": cache_name},
        )

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: Key) -> Path:
        digest = hashlib.sha256(to_bytes(key)).hexdigest()
        return self._directory / f"{self._prefix}{digest}{self._suffix}"

    def _own_files(self) -> Iterator[Path]:
        """Yield every file belonging to this cache."""
        hash_len = hashlib.sha256().digest_size * 2
        for path in self._directory.iterdir():
            name = path.name
            if not (name.startswith(self._prefix) and name.endswith(self._suffix)):
                continue
            middle = name[len(self._prefix):len(name) - len(self._suffix)]
            if len(middle) == hash_len and path.is_file():
                yield path

    @staticmethod
    def _read(path: Path) -> Tuple[Optional[float], bytes]:
        """Return ``(expires_at, value)`` for a cache file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the header is corrupt.
        """
        with open(path, "rb") as fh:
            header = fh.readline()
            value = fh.read()
        if not header.endswith(b"\n"):
            raise ValueError("missing header line")
        expires = float(header.strip())
        return (expires if expires > 0 else None), value

    def _load(self, key: Key) -> Tuple[Path, Optional[float], bytes]:
        path = self._path(key)
        try:
            expires_at, value = self._read(path)
        except FileNotFoundError:
            raise ItemNotInCacheError(
                f"No cache file for key {to_bytes(key)[:40]!r}"
            ) from None
        except ValueError as e:
            logger.warning(
                "Corrupt cache file removed",
                extra={"path": str(path), "error": str(e)},
            )
            path.unlink(missing_ok=True)
            raise ItemNotInCacheError(f"Corrupt cache file {path.name}") from e

        if expires_at is not None and time.time() >= expires_at:
            path.unlink(missing_ok=True)
            raise ItemNotInCacheError(f"Cache file {path.name} expired")
        return path, expires_at, value

    def get(self, key: Key) -> bytes:
        return self._load(key)[2]

    def get_remaining_ttl(self, key: Key) -> int:
        _, expires_at, _ = self._load(key)
        return remaining_seconds(expires_at, time.time())

    def is_in_cache(self, key: Key) -> bool:
        try:
            self._load(key)
        except ItemNotInCacheError:
            return False
        return True

    def set(self, key: Key, value: Value, ttl: int = -1) -> None:
        if ttl < 0:
            ttl = self._default_ttl
        expires_at = time.time() + ttl if ttl > 0 else 0
        data = to_bytes(value, "value")
        path = self._path(key)

        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(repr(float(expires_at)).encode("ascii") + b"\n")
                fh.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def set_default_ttl(self, ttl: int) -> None:
        if ttl >= 0:
            self._default_ttl = ttl

    def delete(self, key: Key) -> None:
        self._path(key).unlink(missing_ok=True)

    def flush(self) -> None:
        count = 0
        for path in list(self._own_files()):
            path.unlink(missing_ok=True)
            count += 1
        logger.debug(
            "Directory cache flushed",
            extra={"directory": str(self._directory), "entries_removed": count},
        )

    def clean(self) -> None:
        now = time.time()
        removed = 0
        for path in list(self._own_files()):
            try:
                expires_at, _ = self._read(path)
            except FileNotFoundError:
                continue
            except ValueError:
                expires_at = now
            if expires_at is not None and now >= expires_at:
                path.unlink(missing_ok=True)
                removed += 1
        if removed:
            logger.debug(
                "Expired cache files cleaned up",
                extra={"directory": str(self._directory), "count": removed},
            )

"""Disk-based storage for the last good response body of each cache name.

Values are stored as UTF-8 JSON documents, written atomically through
:func:`~offlinefetch.config._atomic_write` so that a concurrent reader sees
either the previous document or the new one, never a partial write. Apart
from that there is no locking: the last writer wins.

Cache names are used verbatim as file names, which is why
:func:`validate_cache_name` rejects anything that could resolve outside the
cache directory.

See Also:
    :class:`~offlinefetch.fetcher.OfflineFallbackFetcher` -- the consumer
    that turns the errors raised here into empty outcome fields.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from offlinefetch.config import _atomic_write
from offlinefetch.exceptions import (
    CacheCorruptError,
    CacheMissError,
    CacheWriteError,
    InvalidCacheNameError,
)

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def validate_cache_name(name: str) -> str:
    """Return *name* unchanged if it is safe to use as a file name.

    Raises:
        InvalidCacheNameError: For empty names, ``.``, ``..``, or names
            containing a path separator or NUL byte.
    """
    if not isinstance(name, str) or not name:
        raise InvalidCacheNameError("Cache name must be a non-empty string")
    if name in (".", ".."):
        raise InvalidCacheNameError(f"Cache name {name!r} is reserved")
    for char in _FORBIDDEN_CHARS:
        if char in name:
            raise InvalidCacheNameError(
                f"Cache name {name!r} must not contain {char!r}"
            )
    return name


class OfflineCache:
    """Stores one decoded JSON value per cache name under *cache_dir*.

    The directory is created lazily on the first write, so constructing a
    cache never touches the filesystem.

    Args:
        cache_dir: Directory holding the cache files.

    Example::

        cache = OfflineCache("/tmp/offline")
        cache.store("weather", {"temp": 72})
        cache.load("weather")          # {'temp': 72}
        cache.modified_at("weather")   # datetime(..., tzinfo=timezone.utc)
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir)

    @property
    def directory(self) -> Path:
        return self._cache_dir

    def path_for(self, name: str) -> Path:
        """Resolve the file backing *name*.

        Raises:
            InvalidCacheNameError: If *name* is not a safe file name.
        """
        return self._cache_dir / validate_cache_name(name)

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def load(self, name: str) -> Any:
        """Read and decode the value cached under *name*.

        A stored JSON ``null`` is a hit and returns ``None``; use the
        exceptions to tell a miss from a hit.

        Raises:
            CacheMissError: No entry exists for *name*.
            CacheCorruptError: The entry cannot be read, is not valid JSON, or
                nests too deeply to decode.
        """
        path = self.path_for(name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise CacheMissError(f"No cache entry at {path}", name) from exc
        except OSError as exc:
            raise CacheCorruptError(f"Cannot read cache entry {path}: {exc}", name) from exc

        try:
            return json.loads(raw.decode("utf-8"))
        except (ValueError, RecursionError) as exc:
            raise CacheCorruptError(f"Cache entry {path} is not valid JSON: {exc}", name) from exc

    def store(self, name: str, value: Any) -> Path:
        """Serialise *value* as JSON and write it over the entry for *name*.

        Returns:
            The path that was written.

        Raises:
            CacheWriteError: The value is not JSON-serialisable or the file
                cannot be written.
        """
        path = self.path_for(name)
        try:
            data = json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise CacheWriteError(f"Cannot serialise value for {name!r}: {exc}", name) from exc

        try:
            _atomic_write(path, data)
        except OSError as exc:
            raise CacheWriteError(f"Cannot write cache entry {path}: {exc}", name) from exc
        return path

    def modified_at(self, name: str) -> Optional[datetime]:
        """Return the entry's filesystem modification time, or ``None`` if unreadable."""
        path = self.path_for(name)
        try:
            mtime = os.stat(path).st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

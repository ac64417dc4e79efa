"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the process-level configuration of offlinefetch:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.offlinefetch/`` on macOS and Windows. See :func:`get_cache_dir`
  and :func:`get_data_dir`.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, and defaults into a
  :class:`~offlinefetch.models.FetcherSettings`.
* **Atomic writes** -- :func:`_atomic_write` writes via a temp file and
  rename so a reader never observes a half-written cache entry.

The library API never calls :func:`resolve_settings` itself; the cache
directory and transport options are passed explicitly to
:class:`~offlinefetch.fetcher.OfflineFallbackFetcher`. Only the CLI reads
the environment.
"""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from offlinefetch.exceptions import ConfigError
from offlinefetch.models import FetcherSettings

_APP_NAME = "offlinefetch"

ENV_CACHE_DIR = "OFFLINEFETCH_CACHE_DIR"
ENV_TIMEOUT = "OFFLINEFETCH_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_cache_dir(create: bool = True) -> Path:
    """Return the per-user cache directory, creating it unless *create* is false.

    Cache entries written by the fetcher live directly in this directory,
    one file per cache name. They can be safely deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/offlinefetch/`` (default ``~/.cache/offlinefetch/``).
    On macOS/Windows: ``~/.offlinefetch/cache/``.

    Read-only callers pass ``create=False``; the directory is then made by
    the first cache write.

    Returns:
        Absolute path to the cache directory.
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CACHE_HOME", (".cache",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/offlinefetch/`` (default ``~/.local/share/offlinefetch/``).
    On macOS/Windows: ``~/.offlinefetch/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: bytes) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up and the original exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Precedence resolution ---


def resolve_settings(
    cli_cache_dir: Optional[str] = None,
    cli_timeout: Optional[float] = None,
) -> FetcherSettings:
    """Resolve fetcher settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_cache_dir``, ``cli_timeout``)
        2. Environment variables (``OFFLINEFETCH_CACHE_DIR``, ``OFFLINEFETCH_TIMEOUT``)
        3. Defaults (XDG cache directory, 30 second timeout)

    Returns:
        The effective :class:`~offlinefetch.models.FetcherSettings` with
        ``cache_dir`` always set.

    Raises:
        ConfigError: If an environment variable holds an invalid value.
    """
    cache_dir: Optional[str] = os.environ.get(ENV_CACHE_DIR) or None
    if cli_cache_dir is not None:
        cache_dir = cli_cache_dir

    timeout: Optional[float] = None
    env_timeout = os.environ.get(ENV_TIMEOUT)
    if env_timeout:
        try:
            timeout = float(env_timeout)
        except ValueError as exc:
            raise ConfigError(
                f"Invalid {ENV_TIMEOUT}={env_timeout!r}: expected a number of seconds"
            ) from exc
    if cli_timeout is not None:
        timeout = cli_timeout

    resolved_dir = Path(cache_dir).expanduser() if cache_dir else get_cache_dir(create=False)

    values: dict[str, object] = {"cache_dir": resolved_dir}
    if timeout is not None:
        values["timeout"] = timeout
    try:
        return FetcherSettings.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc

"""Exception hierarchy for offlinefetch.

All exceptions inherit from :class:`OfflineFetchError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`offlinefetch.exit_codes`.
The fetcher catches the cache errors internally and converts them into empty
outcome fields; only :class:`InvalidCacheNameError` ever reaches a library
caller. The CLI entry point in :func:`offlinefetch.app.main` catches
``OfflineFetchError`` and exits with the appropriate code.

Subclass hierarchy::

    OfflineFetchError (exit 1)
    +-- InvalidUsageError       (exit 2)
    |   +-- InvalidCacheNameError
    +-- CacheError              (exit 1)
    |   +-- CacheMissError
    |   +-- CacheCorruptError
    |   +-- CacheWriteError
    +-- ConfigError             (exit 1)
"""

from offlinefetch.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class OfflineFetchError(Exception):
    """Base exception for all offlinefetch errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OfflineFetchError):
    """Raised for invalid CLI arguments or malformed request options."""

    exit_code = EXIT_INVALID_USAGE


class InvalidCacheNameError(InvalidUsageError):
    """Raised when a cache name could escape the cache directory.

    Empty names, ``.``, ``..`` and names containing a path separator or a
    NUL byte are rejected before any filesystem or network access.
    """


class CacheError(OfflineFetchError):
    """Base class for failures reading or writing a cache entry."""

    def __init__(self, message: str, cache_name: str):
        super().__init__(message)
        self.cache_name = cache_name


class CacheMissError(CacheError):
    """Raised when no cache entry exists for the requested name."""


class CacheCorruptError(CacheError):
    """Raised when a cache entry exists but cannot be read or decoded."""


class CacheWriteError(CacheError):
    """Raised when a cache entry cannot be written to disk."""


class ConfigError(OfflineFetchError):
    """Raised for configuration problems (bad environment values, unusable directories)."""

    exit_code = EXIT_GENERIC_FAILURE

"""offlinefetch -- JSON over HTTP with a last-known-good disk cache.

Every successful (HTTP 200) response is written to a local cache file named
by the caller. When the network or the server fails to produce a usable
body, the cached copy is served instead and the result is tagged
*offline*. The cache can also be read directly without any network access.

Typical use::

    from offlinefetch import OfflineCache, OfflineFallbackFetcher, HttpxTransport

    async with HttpxTransport() as transport:
        fetcher = OfflineFallbackFetcher(transport, OfflineCache(cache_dir))
        outcome = await fetcher.fetch_with_fallback(url, "weather")

Modules:
    fetcher: The online/offline decision (:class:`OfflineFallbackFetcher`).
    cache: One-file-per-name JSON storage (:class:`OfflineCache`).
    client: The httpx-backed HTTP collaborator.
    models: Pydantic models shared across the package.
    config: XDG directories, atomic writes, settings precedence.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
    app: Typer CLI entry point.
"""

from offlinefetch.cache import OfflineCache
from offlinefetch.client import HTTPTransport, HttpxTransport
from offlinefetch.fetcher import OfflineFallbackFetcher, fetch_with_fallback, read_cache
from offlinefetch.models import (
    DataSource,
    Diagnostic,
    FailureKind,
    FetcherSettings,
    FetchOutcome,
    HTTPMethod,
    ParameterEncoding,
)

__version__ = "0.1.0"

__all__ = [
    "DataSource",
    "Diagnostic",
    "FailureKind",
    "FetchOutcome",
    "FetcherSettings",
    "HTTPMethod",
    "HTTPTransport",
    "HttpxTransport",
    "OfflineCache",
    "OfflineFallbackFetcher",
    "ParameterEncoding",
    "fetch_with_fallback",
    "read_cache",
]

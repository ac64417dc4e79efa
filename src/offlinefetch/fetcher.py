"""Online-first fetching with a per-name offline fallback.

:class:`OfflineFallbackFetcher` issues a request through an injected
:class:`~offlinefetch.client.HTTPTransport`. A decoded response is returned
as an *online* outcome, and when its status is 200 the body also replaces the
cache entry for the given name. When the request yields no usable body the
last cached body is served instead as an *offline* outcome, with a
synthesised 200 status. When there is nothing cached either, the outcome is
``(None, None, OFFLINE)``.

Network and cache failures never propagate to the caller. They are visible
only through the optional diagnostic sink and the debug output. The single
exception is :class:`~offlinefetch.exceptions.InvalidUsageError` (an unsafe
cache name or unknown HTTP method), raised before any I/O happens.

The module-level :func:`fetch_with_fallback` and :func:`read_cache`
coroutines wire a fetcher to the default XDG cache directory and a
short-lived :class:`~offlinefetch.client.HttpxTransport`.

Example::

    fetcher = OfflineFallbackFetcher(transport, OfflineCache(cache_dir))
    outcome = await fetcher.fetch_with_fallback(
        "https://api.example.com/weather", "weather",
    )
    if outcome.source is DataSource.OFFLINE:
        ...
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from offlinefetch.cache import OfflineCache
from offlinefetch.client import HTTPTransport, HttpxTransport
from offlinefetch.client.transport import normalise_method
from offlinefetch.config import get_cache_dir
from offlinefetch.exceptions import (
    CacheCorruptError,
    CacheMissError,
    CacheWriteError,
    InvalidUsageError,
)
from offlinefetch.models import (
    DataSource,
    Diagnostic,
    FailureKind,
    FetcherSettings,
    FetchOutcome,
    HTTPMethod,
    ParameterEncoding,
    TransportResponse,
)
from offlinefetch.output import get_output

HTTP_OK = 200

DiagnosticSink = Callable[[Diagnostic], None]
CompletionHandler = Callable[[FetchOutcome], None]


class OfflineFallbackFetcher:
    """Fetches JSON over HTTP and falls back to the last good cached copy.

    Args:
        transport: The HTTP collaborator used for live requests.
        cache: An :class:`~offlinefetch.cache.OfflineCache`, or the
            directory to build one in.
        diagnostics: Optional callable receiving a
            :class:`~offlinefetch.models.Diagnostic` for every failure the
            fetcher absorbs. Exceptions raised by the sink propagate.
    """

    def __init__(
        self,
        transport: HTTPTransport,
        cache: OfflineCache | str | Path,
        diagnostics: Optional[DiagnosticSink] = None,
    ) -> None:
        self._transport = transport
        self._cache = cache if isinstance(cache, OfflineCache) else OfflineCache(cache)
        self._diagnostics = diagnostics

    @property
    def cache(self) -> OfflineCache:
        return self._cache

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    async def fetch_with_fallback(
        self,
        url: str,
        cache_name: str,
        method: HTTPMethod | str = HTTPMethod.GET,
        parameters: Optional[Mapping[str, Any]] = None,
        encoding: ParameterEncoding = ParameterEncoding.URL_DEFAULT,
        headers: Optional[Mapping[str, str]] = None,
        on_complete: Optional[CompletionHandler] = None,
    ) -> FetchOutcome:
        """Request *url*, caching a 200 body under *cache_name*, or serve the cache.

        Args:
            url: Absolute URL of the resource.
            cache_name: File name of the cache entry, used verbatim.
            method: HTTP method (default GET).
            parameters: Request parameters, placed according to *encoding*.
            encoding: Where *parameters* go.
            headers: Extra request headers.
            on_complete: Optional handler called exactly once with the
                outcome before this coroutine returns.

        Returns:
            ``(status, body, ONLINE)`` when the server produced a decoded
            body; ``(200, cached, OFFLINE)`` when it did not but a cache
            entry exists; ``(None, None, OFFLINE)`` otherwise.

        Raises:
            InvalidCacheNameError: If *cache_name* is not a safe file name.
            InvalidUsageError: If *method* is not a supported HTTP method.
        """
        self._cache.path_for(cache_name)
        try:
            verb = normalise_method(method)
        except ValueError as exc:
            raise InvalidUsageError(f"Unsupported HTTP method: {method!r}") from exc

        output = get_output()
        response = await self._transport.perform(
            url,
            method=verb,
            parameters=parameters,
            encoding=encoding,
            headers=headers,
        )

        if response.decoded:
            if response.status_code == HTTP_OK:
                self._persist(cache_name, response.body)
            output.debug(f"{cache_name}: served online (HTTP {response.status_code})")
            outcome = FetchOutcome(
                status_code=response.status_code,
                body=response.body,
                source=DataSource.ONLINE,
            )
        else:
            kind = (
                FailureKind.NETWORK_FAILURE
                if response.status_code is None
                else FailureKind.UNDECODABLE_RESPONSE
            )
            self._report(kind, cache_name, response.error or "")
            output.debug(f"{cache_name}: request failed, falling back to cache")
            outcome = self._load_offline(cache_name)

        return self._complete(outcome, on_complete)

    async def read_cache(
        self,
        cache_name: str,
        on_complete: Optional[CompletionHandler] = None,
    ) -> FetchOutcome:
        """Serve the cache entry for *cache_name* without touching the network.

        The modification time and the content are read independently: a
        corrupt entry still reports its mtime.

        Returns:
            ``(200, cached, OFFLINE, mtime)`` on a hit, otherwise
            ``(None, None, OFFLINE, mtime-or-None)``.

        Raises:
            InvalidCacheNameError: If *cache_name* is not a safe file name.
        """
        self._cache.path_for(cache_name)

        modified_at = self._cache.modified_at(cache_name)
        if modified_at is None:
            self._report(
                FailureKind.MTIME_UNAVAILABLE,
                cache_name,
                f"cannot stat {self._cache.path_for(cache_name)}",
            )

        outcome = self._load_offline(cache_name, modified_at)
        return self._complete(outcome, on_complete)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _persist(self, cache_name: str, body: Any) -> None:
        try:
            self._cache.store(cache_name, body)
        except CacheWriteError as exc:
            self._report(FailureKind.CACHE_WRITE_FAILED, cache_name, str(exc))
            get_output().debug(f"{cache_name}: cache write failed: {exc}")

    def _load_offline(
        self,
        cache_name: str,
        modified_at: Optional[datetime] = None,
    ) -> FetchOutcome:
        try:
            body = self._cache.load(cache_name)
        except CacheMissError as exc:
            self._report(FailureKind.CACHE_MISSING, cache_name, str(exc))
        except CacheCorruptError as exc:
            self._report(FailureKind.CACHE_CORRUPT, cache_name, str(exc))
        else:
            get_output().debug(f"{cache_name}: served from cache")
            return FetchOutcome(
                status_code=HTTP_OK,
                body=body,
                source=DataSource.OFFLINE,
                modified_at=modified_at,
            )

        return FetchOutcome(
            status_code=None,
            body=None,
            source=DataSource.OFFLINE,
            modified_at=modified_at,
        )

    def _report(self, kind: FailureKind, cache_name: str, detail: str) -> None:
        if self._diagnostics is not None:
            self._diagnostics(Diagnostic(kind=kind, cache_name=cache_name, detail=detail))

    @staticmethod
    def _complete(
        outcome: FetchOutcome,
        on_complete: Optional[CompletionHandler],
    ) -> FetchOutcome:
        if on_complete is not None:
            on_complete(outcome)
        return outcome


# ------------------------------------------------------------------ #
# Convenience entry points
# ------------------------------------------------------------------ #


async def fetch_with_fallback(
    url: str,
    cache_name: str,
    method: HTTPMethod | str = HTTPMethod.GET,
    parameters: Optional[Mapping[str, Any]] = None,
    encoding: ParameterEncoding = ParameterEncoding.URL_DEFAULT,
    headers: Optional[Mapping[str, str]] = None,
    settings: Optional[FetcherSettings] = None,
    diagnostics: Optional[DiagnosticSink] = None,
) -> FetchOutcome:
    """One-shot :meth:`OfflineFallbackFetcher.fetch_with_fallback`.

    Builds an :class:`~offlinefetch.client.HttpxTransport` from *settings*
    (defaults when omitted), uses ``settings.cache_dir`` or the XDG cache
    directory, and closes the transport before returning.
    """
    settings = settings or FetcherSettings()
    cache_dir = settings.cache_dir or get_cache_dir()
    async with HttpxTransport.from_settings(settings) as transport:
        fetcher = OfflineFallbackFetcher(transport, cache_dir, diagnostics=diagnostics)
        return await fetcher.fetch_with_fallback(
            url,
            cache_name,
            method=method,
            parameters=parameters,
            encoding=encoding,
            headers=headers,
        )


async def read_cache(
    cache_name: str,
    cache_dir: Optional[str | Path] = None,
    diagnostics: Optional[DiagnosticSink] = None,
) -> FetchOutcome:
    """One-shot :meth:`OfflineFallbackFetcher.read_cache` against *cache_dir* (XDG default).

    No transport is created and nothing is written: the read never touches
    the network and does not create a missing cache directory.
    """
    fetcher = OfflineFallbackFetcher(
        _NoNetworkTransport(),
        cache_dir or get_cache_dir(create=False),
        diagnostics=diagnostics,
    )
    return await fetcher.read_cache(cache_name)


class _NoNetworkTransport:
    """Transport for cache-only fetchers; every request counts as a network failure."""

    async def perform(self, url: str, **kwargs: Any) -> TransportResponse:
        return TransportResponse(error="network access disabled")

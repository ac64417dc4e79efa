"""Asynchronous HTTP transport -- the network collaborator of the fetcher.

This module provides :class:`HttpxTransport`, a thin wrapper around
:class:`httpx.AsyncClient` that performs a single request and reports the
result as a :class:`~offlinefetch.models.TransportResponse`. It never
raises for network problems: connection errors, timeouts and undecodable
bodies all come back as ``decoded=False`` so the fetcher can fall back to
its cache.

Requests are not retried and status codes are not validated: any decoded
body is an online result for the fetcher.

See Also:
    :class:`~offlinefetch.fetcher.OfflineFallbackFetcher` for the consumer.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

import httpx

from offlinefetch.client.response import decode_response
from offlinefetch.models import (
    FetcherSettings,
    HTTPMethod,
    ParameterEncoding,
    TransportResponse,
)
from offlinefetch.output import get_output

_QUERY_METHODS = frozenset({HTTPMethod.GET, HTTPMethod.HEAD, HTTPMethod.DELETE})


class HTTPTransport(Protocol):
    """The capability the fetcher needs: perform a request, get status and decoded body.

    Implementations report every failed request as a response with
    ``decoded=False`` instead of raising.
    """

    async def perform(
        self,
        url: str,
        method: HTTPMethod | str = HTTPMethod.GET,
        parameters: Optional[Mapping[str, Any]] = None,
        encoding: ParameterEncoding = ParameterEncoding.URL_DEFAULT,
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse:
        ...


def normalise_method(method: HTTPMethod | str) -> HTTPMethod:
    """Coerce *method* (enum or case-insensitive string) to :class:`HTTPMethod`.

    Raises:
        ValueError: If *method* is not a supported HTTP method.
    """
    if isinstance(method, HTTPMethod):
        return method
    return HTTPMethod(method.upper())


def encode_parameters(
    method: HTTPMethod,
    parameters: Optional[Mapping[str, Any]],
    encoding: ParameterEncoding,
) -> dict[str, Any]:
    """Build the httpx keyword arguments that carry *parameters*.

    Returns:
        A dict with one of ``params``, ``data`` or ``json``, or an empty
        dict when there are no parameters.
    """
    if not parameters:
        return {}

    if encoding == ParameterEncoding.URL_DEFAULT:
        encoding = (
            ParameterEncoding.QUERY_STRING
            if method in _QUERY_METHODS
            else ParameterEncoding.HTTP_BODY
        )

    if encoding == ParameterEncoding.QUERY_STRING:
        return {"params": dict(parameters)}
    if encoding == ParameterEncoding.HTTP_BODY:
        return {"data": dict(parameters)}
    return {"json": dict(parameters)}


class HttpxTransport:
    """Default :class:`HTTPTransport` backed by :class:`httpx.AsyncClient`.

    Can be used as an async context manager, or directly: the underlying
    client is then created on the first request and released by
    :meth:`aclose`. A client passed in by the caller is used as-is and never
    closed by the transport.

    Args:
        timeout: Request timeout in seconds.
        verify_ssl: Verify TLS certificates.
        follow_redirects: Follow HTTP redirects.
        user_agent: Optional ``User-Agent`` header for every request.
        client: Pre-configured :class:`httpx.AsyncClient` to use instead of
            building one (handy for tests with :class:`httpx.MockTransport`).

    Example::

        async with HttpxTransport(timeout=10) as transport:
            resp = await transport.perform("https://api.example.com/weather")
            if resp.decoded:
                print(resp.status_code, resp.body)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        follow_redirects: bool = True,
        user_agent: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._follow_redirects = follow_redirects
        self._user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: FetcherSettings) -> HttpxTransport:
        """Build a transport from resolved :class:`~offlinefetch.models.FetcherSettings`."""
        return cls(
            timeout=settings.timeout,
            verify_ssl=settings.verify_ssl,
            follow_redirects=settings.follow_redirects,
            user_agent=settings.user_agent,
        )

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxTransport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Request
    # ------------------------------------------------------------------ #

    async def perform(
        self,
        url: str,
        method: HTTPMethod | str = HTTPMethod.GET,
        parameters: Optional[Mapping[str, Any]] = None,
        encoding: ParameterEncoding = ParameterEncoding.URL_DEFAULT,
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse:
        """Send one request and decode its JSON body.

        Args:
            url: Absolute URL of the resource.
            method: HTTP method, as :class:`HTTPMethod` or string.
            parameters: Request parameters, placed according to *encoding*.
            encoding: Where *parameters* go (query string, form body, JSON).
            headers: Extra request headers.

        Returns:
            A :class:`~offlinefetch.models.TransportResponse`. Network errors
            and requests httpx cannot build (such as non-ASCII header values)
            yield ``decoded=False`` with ``status_code=None``.

        Raises:
            ValueError: If *method* is not a supported HTTP method.
        """
        verb = normalise_method(method)
        client = self._ensure_client()
        output = get_output()

        kwargs = encode_parameters(verb, parameters, encoding)
        try:
            response = await client.request(
                verb.value,
                url,
                headers=dict(headers or {}),
                **kwargs,
            )
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError, TypeError) as exc:
            # httpx raises the last two while building a request from bad headers
            output.debug(f"{verb.value} {url} failed: {exc}")
            return TransportResponse(error=f"{type(exc).__name__}: {exc}")

        output.debug(f"{verb.value} {url} -> HTTP {response.status_code}")
        return decode_response(response)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            default_headers: dict[str, str] = {"Accept": "application/json"}
            if self._user_agent:
                default_headers["User-Agent"] = self._user_agent
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._verify_ssl,
                follow_redirects=self._follow_redirects,
                headers=default_headers,
            )
            self._owns_client = True
        return self._client

"""Canonical Pydantic models shared across all offlinefetch modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Request options** -- describe how a request is dispatched:
    :class:`HTTPMethod` and :class:`ParameterEncoding`.

**Results** -- what the transport and the fetcher hand back:
    :class:`TransportResponse`, :class:`DataSource`, :class:`FetchOutcome`,
    :class:`FailureKind`, and :class:`Diagnostic`.

**Configuration** -- :class:`FetcherSettings`, resolved by
    :func:`~offlinefetch.config.resolve_settings`.
"""

from __future__ import annotations

import enum
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Request options ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods accepted by :meth:`~offlinefetch.fetcher.OfflineFallbackFetcher.fetch_with_fallback`."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ParameterEncoding(str, enum.Enum):
    """Where request parameters are placed.

    ``URL_DEFAULT`` picks the query string for methods without a body
    (GET, HEAD, DELETE) and a form-urlencoded body for everything else.
    """

    URL_DEFAULT = "url"
    QUERY_STRING = "query"
    HTTP_BODY = "form"
    JSON = "json"


# --- Results ---


class TransportResponse(BaseModel):
    """What an :class:`~offlinefetch.transport.HTTPTransport` delivers.

    ``decoded`` is the single success signal: when it is ``False`` the
    response carries no usable body, whatever the reason (network error,
    empty payload, invalid JSON). ``body`` may legitimately be ``None`` on a
    decoded response, e.g. for a 204 or a literal JSON ``null``.
    """

    status_code: Optional[int] = None
    body: Any = None
    decoded: bool = False
    error: Optional[str] = Field(
        default=None, description="Why decoding failed, for diagnostics only"
    )


class DataSource(str, enum.Enum):
    """Where the body of a :class:`FetchOutcome` came from."""

    ONLINE = "online"
    """Received from the remote server."""

    OFFLINE = "offline"
    """Restored from the local cache (or nothing could be restored)."""


class FetchOutcome(BaseModel):
    """Result of a fetch or a direct cache read.

    ``modified_at`` is only populated by
    :meth:`~offlinefetch.fetcher.OfflineFallbackFetcher.read_cache`.
    When nothing could be served, ``status_code`` and ``body`` are both
    ``None`` and ``source`` is :attr:`DataSource.OFFLINE`.
    """

    model_config = ConfigDict(frozen=True)

    status_code: Optional[int] = None
    body: Any = None
    source: DataSource
    modified_at: Optional[datetime] = None

    @property
    def is_online(self) -> bool:
        return self.source == DataSource.ONLINE

    @property
    def has_data(self) -> bool:
        """True when either the server or the cache delivered a result."""
        return self.is_online or self.status_code is not None


class FailureKind(str, enum.Enum):
    """Categories reported on the optional diagnostic channel."""

    NETWORK_FAILURE = "network_failure"
    UNDECODABLE_RESPONSE = "undecodable_response"
    CACHE_MISSING = "cache_missing"
    CACHE_CORRUPT = "cache_corrupt"
    CACHE_WRITE_FAILED = "cache_write_failed"
    MTIME_UNAVAILABLE = "mtime_unavailable"


class Diagnostic(BaseModel):
    """A failure the fetcher absorbed instead of raising.

    Delivered to the ``diagnostics`` sink of
    :class:`~offlinefetch.fetcher.OfflineFallbackFetcher` when one is
    installed. Diagnostics never change the outcome returned to the caller.
    """

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    cache_name: str
    detail: str = ""


# --- Configuration ---


class FetcherSettings(BaseModel):
    """Settings for the CLI-built fetcher and its httpx transport."""

    cache_dir: Optional[Path] = Field(
        default=None, description="Cache directory; XDG cache dir when unset"
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")
    user_agent: Optional[str] = Field(
        default=None, description="User-Agent header sent with every request"
    )

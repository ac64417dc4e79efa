"""Response bridges -- from :class:`httpx.Response` to models, and from outcomes to output.

:func:`decode_response` turns a raw httpx response into a
:class:`~offlinefetch.models.TransportResponse`, deciding whether the body is
usable. :func:`format_outcome` renders a
:class:`~offlinefetch.models.FetchOutcome` through the global
:class:`~offlinefetch.output.OutputManager`: the status line goes to stderr,
the body to stdout.

See Also:
    :mod:`offlinefetch.output` -- the output manager that renders data.
"""

from __future__ import annotations

import httpx

from offlinefetch.models import FetchOutcome, TransportResponse
from offlinefetch.output import get_output

EMPTY_BODY_STATUS_CODES = frozenset({204, 205})
"""Statuses whose empty body still counts as a decoded (``null``) value."""


def decode_response(response: httpx.Response) -> TransportResponse:
    """Decode the JSON body of *response*.

    The status code is not validated: a 404 with a JSON error document is a
    decoded response like any other. Only a missing or unparsable body
    marks the response as undecoded.

    Args:
        response: The :class:`httpx.Response` to decode.

    Returns:
        A :class:`~offlinefetch.models.TransportResponse` whose ``decoded``
        flag tells whether ``body`` can be used.
    """
    status = response.status_code

    if status in EMPTY_BODY_STATUS_CODES:
        return TransportResponse(status_code=status, body=None, decoded=True)

    if not response.content:
        return TransportResponse(status_code=status, error="empty response body")

    try:
        body = response.json()
    except ValueError as exc:
        return TransportResponse(status_code=status, error=f"invalid JSON body: {exc}")

    return TransportResponse(status_code=status, body=body, decoded=True)


def format_outcome(outcome: FetchOutcome) -> None:
    """Format and print a fetch outcome using the global output system.

    Writes a status line such as ``HTTP 200 (online)`` or
    ``HTTP 200 (offline, cached 2026-01-02T03:04:05+00:00)`` to stderr,
    then renders the body to stdout. Nothing is written to stdout when the
    outcome carries no data.

    Args:
        outcome: The :class:`~offlinefetch.models.FetchOutcome` to display.
    """
    output = get_output()

    if not outcome.has_data:
        output.warning(f"No data available ({outcome.source.value})")
        return

    status = outcome.status_code if outcome.status_code is not None else "-"
    detail = outcome.source.value
    if outcome.modified_at is not None:
        detail = f"{detail}, cached {outcome.modified_at.isoformat()}"
    output.info(f"HTTP {status} ({detail})")

    if outcome.body is None:
        output.print_data("null")
    else:
        output.format_response(outcome.body)

"""HTTP collaborator for offlinefetch.

Provides the transport the fetcher dispatches requests through, plus the
bridge that renders outcomes to the output system.

Classes:
    :class:`HTTPTransport` -- the protocol the fetcher depends on.
    :class:`HttpxTransport` -- the default implementation backed by
    :class:`httpx.AsyncClient`.

Example::

    from offlinefetch.client import HttpxTransport

    async with HttpxTransport(timeout=10) as transport:
        resp = await transport.perform("https://api.example.com/weather")
"""

from offlinefetch.client.transport import HTTPTransport, HttpxTransport

__all__ = ["HTTPTransport", "HttpxTransport"]

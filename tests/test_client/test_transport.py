"""Tests for the httpx-backed transport and response decoding."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from offlinefetch.client import HttpxTransport
from offlinefetch.client.response import decode_response
from offlinefetch.client.transport import encode_parameters, normalise_method
from offlinefetch.models import FetcherSettings, HTTPMethod, ParameterEncoding
from offlinefetch.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _transport_from_handler(handler) -> HttpxTransport:
    """Create an HttpxTransport backed by an httpx.MockTransport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(client=client)


def _perform(transport: HttpxTransport, url: str = "https://api.example.com/weather", **kwargs: Any):
    async def run():
        async with transport:
            return await transport.perform(url, **kwargs)

    return asyncio.run(run())


@pytest.fixture(autouse=True)
def _clean_output():
    """Reset the global output manager between tests."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# decode_response
# ---------------------------------------------------------------------------


class TestDecodeResponse:
    def test_json_body_is_decoded(self) -> None:
        resp = decode_response(httpx.Response(200, json={"temp": 72}))
        assert resp.decoded
        assert resp.status_code == 200
        assert resp.body == {"temp": 72}

    def test_error_status_with_json_is_still_decoded(self) -> None:
        resp = decode_response(httpx.Response(404, json={"error": "not found"}))
        assert resp.decoded
        assert resp.status_code == 404
        assert resp.body == {"error": "not found"}

    @pytest.mark.parametrize("status", [204, 205])
    def test_empty_status_codes_decode_to_null(self, status: int) -> None:
        resp = decode_response(httpx.Response(status))
        assert resp.decoded
        assert resp.body is None

    def test_empty_body_is_not_decoded(self) -> None:
        resp = decode_response(httpx.Response(200, content=b""))
        assert not resp.decoded
        assert resp.status_code == 200
        assert resp.error == "empty response body"

    def test_invalid_json_is_not_decoded(self) -> None:
        resp = decode_response(httpx.Response(200, content=b"<html>oops</html>"))
        assert not resp.decoded
        assert resp.status_code == 200
        assert "invalid JSON" in (resp.error or "")

    def test_literal_null_body_is_decoded(self) -> None:
        resp = decode_response(httpx.Response(200, content=b"null"))
        assert resp.decoded
        assert resp.body is None

    @pytest.mark.parametrize("payload", [[1, 2, 3], "text", 42, 1.5, True])
    def test_non_object_json_values(self, payload: Any) -> None:
        resp = decode_response(httpx.Response(200, content=json.dumps(payload).encode()))
        assert resp.decoded
        assert resp.body == payload


# ---------------------------------------------------------------------------
# Parameter encoding
# ---------------------------------------------------------------------------


class TestEncodeParameters:
    def test_no_parameters(self) -> None:
        assert encode_parameters(HTTPMethod.GET, None, ParameterEncoding.URL_DEFAULT) == {}
        assert encode_parameters(HTTPMethod.POST, {}, ParameterEncoding.JSON) == {}

    @pytest.mark.parametrize("method", [HTTPMethod.GET, HTTPMethod.HEAD, HTTPMethod.DELETE])
    def test_url_default_uses_query_for_bodiless_methods(self, method: HTTPMethod) -> None:
        assert encode_parameters(method, {"q": "rain"}, ParameterEncoding.URL_DEFAULT) == {
            "params": {"q": "rain"}
        }

    @pytest.mark.parametrize("method", [HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH])
    def test_url_default_uses_form_body_otherwise(self, method: HTTPMethod) -> None:
        assert encode_parameters(method, {"q": "rain"}, ParameterEncoding.URL_DEFAULT) == {
            "data": {"q": "rain"}
        }

    def test_explicit_encodings(self) -> None:
        params = {"q": "rain"}
        assert encode_parameters(HTTPMethod.POST, params, ParameterEncoding.QUERY_STRING) == {
            "params": params
        }
        assert encode_parameters(HTTPMethod.GET, params, ParameterEncoding.HTTP_BODY) == {
            "data": params
        }
        assert encode_parameters(HTTPMethod.POST, params, ParameterEncoding.JSON) == {
            "json": params
        }


class TestNormaliseMethod:
    def test_enum_passthrough(self) -> None:
        assert normalise_method(HTTPMethod.PUT) is HTTPMethod.PUT

    def test_case_insensitive_string(self) -> None:
        assert normalise_method("post") is HTTPMethod.POST

    def test_unknown_method(self) -> None:
        with pytest.raises(ValueError):
            normalise_method("FETCH")


# ---------------------------------------------------------------------------
# HttpxTransport.perform
# ---------------------------------------------------------------------------


class TestPerform:
    def test_simple_get(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"temp": 72})

        resp = _perform(_transport_from_handler(handler))
        assert resp.decoded
        assert resp.status_code == 200
        assert resp.body == {"temp": 72}
        assert seen[0].method == "GET"

    def test_get_parameters_go_to_query_string(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _perform(_transport_from_handler(handler), parameters={"city": "Oslo", "units": "metric"})
        assert seen[0].url.params["city"] == "Oslo"
        assert seen[0].url.params["units"] == "metric"

    def test_post_parameters_go_to_form_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"ok": True})

        resp = _perform(
            _transport_from_handler(handler),
            method="POST",
            parameters={"city": "Oslo"},
        )
        request = seen[0]
        assert request.method == "POST"
        assert request.headers["content-type"].startswith("application/x-www-form-urlencoded")
        assert parse_qs(request.content.decode()) == {"city": ["Oslo"]}
        assert resp.status_code == 201

    def test_json_encoding(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _perform(
            _transport_from_handler(handler),
            method=HTTPMethod.POST,
            parameters={"city": "Oslo", "days": 3},
            encoding=ParameterEncoding.JSON,
        )
        assert json.loads(seen[0].content) == {"city": "Oslo", "days": 3}

    def test_headers_are_sent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _perform(_transport_from_handler(handler), headers={"X-Api-Key": "secret"})
        assert seen[0].headers["X-Api-Key"] == "secret"

    def test_connection_error_is_not_raised(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused")

        resp = _perform(_transport_from_handler(handler))
        assert not resp.decoded
        assert resp.status_code is None
        assert "ConnectError" in (resp.error or "")

    def test_timeout_is_not_raised(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("Read timed out")

        resp = _perform(_transport_from_handler(handler))
        assert not resp.decoded
        assert resp.status_code is None

    def test_non_ascii_header_is_not_raised(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        resp = _perform(_transport_from_handler(handler), headers={"X-City": "Zürich"})
        assert not resp.decoded
        assert resp.status_code is None
        assert "UnicodeEncodeError" in (resp.error or "")
        assert seen == []

    def test_server_error_without_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, content=b"Service Unavailable")

        resp = _perform(_transport_from_handler(handler))
        assert not resp.decoded
        assert resp.status_code == 503

    def test_unknown_method_raises_value_error(self) -> None:
        transport = _transport_from_handler(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValueError):
            _perform(transport, method="FETCH")


class TestClientLifecycle:
    def test_supplied_client_is_not_closed(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        )
        transport = HttpxTransport(client=client)
        _perform(transport)
        assert not client.is_closed
        asyncio.run(client.aclose())

    def test_owned_client_is_closed_on_exit(self) -> None:
        transport = HttpxTransport()

        async def run() -> httpx.AsyncClient:
            async with transport:
                inner = transport._client
                assert inner is not None
            return inner

        inner = asyncio.run(run())
        assert inner.is_closed
        assert transport._client is None

    def test_from_settings(self) -> None:
        settings = FetcherSettings(timeout=5, verify_ssl=False, user_agent="offlinefetch-test")
        transport = HttpxTransport.from_settings(settings)

        async def run() -> httpx.AsyncClient:
            async with transport:
                return transport._client

        inner = asyncio.run(run())
        assert inner.timeout.read == 5
        assert inner.headers["User-Agent"] == "offlinefetch-test"

"""
REST Transport Tests.

============================================================
PURPOSE
============================================================
Unit tests for RestTransport against a fake aiohttp session.

TEST CATEGORIES:
- Status mapping
- Transport failures
- Request building and signing
- Logging: credential masking

============================================================
"""

import asyncio
import base64
import hashlib
import hmac
import json
import logging

import aiohttp
import pytest

from gdax_client import (
    BadRequest,
    ClientConfig,
    Credentials,
    Forbidden,
    HTTPError,
    InternalServerError,
    NotFound,
    RequestTimeoutError,
    RestTransport,
    TransportError,
    Unauthorized,
    map_http_error,
    sign_request,
)


SECRET = base64.b64encode(b"s").decode()


# ============================================================
# FAKES
# ============================================================

class FakeResponse:
    def __init__(self, status: int, text: str):
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, status: int = 200, text: str = "{}", error: Exception = None):
        self.status = status
        self.text = text
        self.error = error
        self.calls = []
        self.closed = False

    def request(self, method, url, headers=None, data=None):
        self.calls.append({
            "method": method,
            "url": str(url),
            "headers": headers,
            "data": data,
        })
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status, self.text)

    async def close(self):
        self.closed = True


def make_transport(session, credentials=None, api_uri="https://api.example.com"):
    config = ClientConfig(api_uri=api_uri, credentials=credentials)
    return RestTransport(config, session=session, clock=lambda: 1000)


@pytest.fixture
def credentials():
    return Credentials(key="k", secret=SECRET, passphrase="my-passphrase")


# ============================================================
# STATUS MAPPING
# ============================================================

class TestStatusMapping:
    """Tests for response status handling."""

    @pytest.mark.asyncio
    async def test_200_returns_decoded_body(self):
        """Test successful responses decode JSON."""
        session = FakeSession(200, '[{"id": "BTC-USD"}]')
        transport = make_transport(session)

        result = await transport.request("GET", ["products"])

        assert result == [{"id": "BTC-USD"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error_class", [
        (400, BadRequest),
        (401, Unauthorized),
        (403, Forbidden),
        (404, NotFound),
        (500, InternalServerError),
    ])
    async def test_known_statuses_raise_typed_errors(self, status, error_class):
        """Test each known status maps to its own error class."""
        body = '{"message": "nope"}'
        transport = make_transport(FakeSession(status, body))

        with pytest.raises(error_class) as exc_info:
            await transport.request("GET", ["orders"])

        assert exc_info.value.response == body
        assert exc_info.value.status_code == status
        assert exc_info.value.message == "nope"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [201, 418, 429, 503])
    async def test_other_statuses_raise_generic_error(self, status):
        """Test unknown statuses raise the base HTTPError."""
        transport = make_transport(FakeSession(status, "teapot"))

        with pytest.raises(HTTPError) as exc_info:
            await transport.request("GET", ["time"])

        assert type(exc_info.value) is HTTPError
        assert exc_info.value.status_code == status
        assert exc_info.value.response == "teapot"

    def test_map_http_error_distinct_classes(self):
        """Test the mapper returns distinct classes per status."""
        classes = {type(map_http_error(s, "")) for s in (400, 401, 403, 404, 500)}

        assert len(classes) == 5
        assert type(map_http_error(502, "")) is HTTPError

    def test_non_json_error_body_kept_raw(self):
        """Test plain-text bodies are exposed as the message."""
        error = map_http_error(404, "Not Found")

        assert error.payload is None
        assert error.message == "Not Found"


# ============================================================
# TRANSPORT FAILURES
# ============================================================

class TestTransportFailures:
    """Tests for network-level failures."""

    @pytest.mark.asyncio
    async def test_connection_error_raises_transport_error(self):
        """Test client errors become TransportError, not HTTPError."""
        cause = aiohttp.ClientConnectionError("connection refused")
        transport = make_transport(FakeSession(error=cause))

        with pytest.raises(TransportError) as exc_info:
            await transport.request("GET", ["products"])

        assert not isinstance(exc_info.value, HTTPError)
        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self):
        """Test timeouts become RequestTimeoutError."""
        transport = make_transport(FakeSession(error=asyncio.TimeoutError()))

        with pytest.raises(RequestTimeoutError):
            await transport.request("GET", ["products"])

    @pytest.mark.asyncio
    async def test_no_retry_on_failure(self):
        """Test a failed request is attempted exactly once."""
        session = FakeSession(500, "boom")
        transport = make_transport(session)

        with pytest.raises(InternalServerError):
            await transport.request("GET", ["products"])

        assert len(session.calls) == 1


# ============================================================
# REQUEST BUILDING
# ============================================================

class TestRequestBuilding:
    """Tests for URL, headers and signing."""

    @pytest.mark.asyncio
    async def test_path_joined_onto_base_uri(self):
        """Test path segments and base URI."""
        session = FakeSession()
        transport = make_transport(session, api_uri="https://api.example.com/")

        await transport.request("GET", ["products", "BTC-USD", "book"], query={"level": "2"})

        assert session.calls[0]["url"] == "https://api.example.com/products/BTC-USD/book?level=2"
        assert session.calls[0]["method"] == "GET"

    @pytest.mark.asyncio
    async def test_anonymous_request_has_no_auth_headers(self):
        """Test no CB-ACCESS headers without credentials."""
        session = FakeSession()
        transport = make_transport(session)

        await transport.request("GET", ["products"])

        headers = session.calls[0]["headers"]
        assert not any(name.startswith("CB-ACCESS") for name in headers)
        assert headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_signed_get_with_query(self, credentials):
        """Test the signature covers the relative path and query."""
        session = FakeSession()
        transport = make_transport(session, credentials)

        await transport.request("GET", ["orders"], query={"status": "done"})

        headers = session.calls[0]["headers"]
        digest = hmac.new(b"s", b"1000GET/orders?status=done", hashlib.sha256).digest()
        assert headers["CB-ACCESS-SIGN"] == base64.b64encode(digest).decode()
        assert headers["CB-ACCESS-KEY"] == "k"
        assert headers["CB-ACCESS-TIMESTAMP"] == "1000"
        assert headers["CB-ACCESS-PASSPHRASE"] == "my-passphrase"

    @pytest.mark.asyncio
    async def test_signed_body_matches_transmitted_body(self, credentials):
        """Test the body that is signed is the body that is sent."""
        session = FakeSession()
        transport = make_transport(session, credentials)
        body = {"type": "limit", "side": "buy", "price": "100.00", "size": "0.1"}

        await transport.request("POST", ["orders"], body=body)

        call = session.calls[0]
        assert json.loads(call["data"]) == body
        expected = sign_request(
            credentials, "POST", "/orders", body=call["data"], timestamp=1000,
        )
        assert call["headers"]["CB-ACCESS-SIGN"] == expected.signature

    @pytest.mark.asyncio
    async def test_unsupported_method_rejected(self):
        """Test methods outside the REST set are rejected."""
        transport = make_transport(FakeSession())

        with pytest.raises(ValueError, match="Unsupported"):
            await transport.request("PATCH", ["orders"])

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        """Test close() leaves an external session open."""
        session = FakeSession()
        transport = make_transport(session)

        await transport.close()

        assert session.closed is False


# ============================================================
# LOGGING
# ============================================================

class TestLogging:
    """Tests that credentials stay out of logs."""

    @pytest.mark.asyncio
    async def test_credentials_masked(self, credentials, caplog):
        """Test passphrase and signature are not logged."""
        session = FakeSession(401, '{"message": "invalid signature"}')
        transport = make_transport(session, credentials)

        with caplog.at_level(logging.DEBUG, logger="gdax_client.rest"):
            with pytest.raises(Unauthorized):
                await transport.request("GET", ["accounts"])

        signature = session.calls[0]["headers"]["CB-ACCESS-SIGN"]
        assert "REQUEST" in caplog.text
        assert "RESPONSE_ERROR" in caplog.text
        assert "my-passphrase" not in caplog.text
        assert signature not in caplog.text

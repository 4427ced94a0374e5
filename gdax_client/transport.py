"""
GDAX Client - REST Transport.

============================================================
PURPOSE
============================================================
Issues one signed or unsigned HTTP request and maps the response
to a decoded payload or a typed error.

BEHAVIOR:
- path = "/" + "/".join(path_parts), appended to the base URI
- Authenticated calls sign the relative path with the exact body and
  query string that are transmitted
- 200 -> decoded JSON
- 400/401/403/404/500 -> matching HTTPError subclass
- Any other status -> generic HTTPError
- Network failures -> TransportError / RequestTimeoutError
- Never retries

Concurrent calls are independent. The only shared state is the
immutable configuration and the aiohttp session.

============================================================
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

import aiohttp
from yarl import URL

from .config import ClientConfig
from .errors import (
    ProtocolError,
    RequestTimeoutError,
    TransportError,
    map_http_error,
)
from .logging_utils import ClientLogger
from .signer import encode_query, serialize_body, sign_request


logger = logging.getLogger(__name__)


HTTP_METHODS = ("GET", "PUT", "POST", "DELETE")


class RestTransport:
    """
    Low-level REST client shared by the endpoint wrappers.

    Usage:
        async with RestTransport(config) as transport:
            products = await transport.request("GET", ["products"])
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize transport.

        Args:
            config: Client configuration (defaults to anonymous production)
            session: Externally owned aiohttp session; left open on close()
            clock: Timestamp source used for signing
        """
        self._config = config or ClientConfig()
        self._session = session
        self._owns_session = session is None
        self._clock = clock
        self._logger = ClientLogger("gdax_client.rest")

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def headers(self) -> Dict[str, str]:
        """Headers added to every request."""
        return {
            "User-Agent": self._config.user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    # --------------------------------------------------------
    # SESSION
    # --------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "RestTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --------------------------------------------------------
    # REQUEST HANDLING
    # --------------------------------------------------------

    async def request(
        self,
        method: str,
        path_parts: Sequence[Union[str, int]],
        query: Optional[Mapping[str, Any]] = None,
        body: Optional[Any] = None,
    ) -> Any:
        """
        Make a request.

        Args:
            method: GET, PUT, POST or DELETE
            path_parts: Path segments, e.g. ["products", "BTC-USD", "book"]
            query: Query parameters (None values are dropped)
            body: JSON-serializable request body

        Returns:
            Decoded JSON payload

        Raises:
            HTTPError: On any non-200 status
            TransportError: On network failure
            ConfigurationError: If the configured secret is malformed
        """
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        path = "/".join(["", *(str(part) for part in path_parts)])
        query_string = encode_query(query)
        body_str = serialize_body(body) if body is not None else None

        url = self._config.api_uri + path
        if query_string:
            url = f"{url}?{query_string}"

        headers = self.headers
        if self._config.credentials is not None:
            signature = sign_request(
                self._config.credentials,
                method,
                path,
                body=body_str,
                query=query,
                timestamp=self._clock(),
            )
            headers.update(signature.to_headers())

        request_id = self._logger.log_request(
            method=method,
            path=path,
            query=query_string,
            headers=headers,
            body=body_str,
        )

        session = self._get_session()
        start_time = time.monotonic()

        try:
            async with session.request(
                method,
                URL(url, encoded=True),
                headers=headers,
                data=body_str,
            ) as response:
                status = response.status
                text = await response.text()
        except asyncio.TimeoutError as e:
            logger.warning(f"Request timed out: {method} {path}")
            raise RequestTimeoutError(
                f"Request timed out: {method} {path}", url=url
            ) from e
        except aiohttp.ClientError as e:
            logger.warning(f"Request failed: {method} {path}: {e}")
            raise TransportError(
                f"Request failed: {method} {path}: {e}", url=url
            ) from e

        latency_ms = (time.monotonic() - start_time) * 1000
        return self._handle_response(request_id, status, text, latency_ms)

    def _handle_response(
        self,
        request_id: str,
        status: int,
        text: str,
        latency_ms: float,
    ) -> Any:
        """Map status to payload or typed error."""
        success = status == 200
        self._logger.log_response(
            request_id=request_id,
            status_code=status,
            latency_ms=latency_ms,
            success=success,
            response_body=text,
        )

        if not success:
            raise map_http_error(status, text)

        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise ProtocolError("Response body is not valid JSON", raw=text) from e

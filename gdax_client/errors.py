"""
GDAX Client - Error Taxonomy and Mapping.

============================================================
PURPOSE
============================================================
Typed errors raised or emitted by the client:
- Configuration errors (fatal, never retried)
- Transport errors (network, timeout)
- Protocol errors (HTTP status >= 400, unparseable frames)
- Stream rate-limit rejection (escalated configuration error)

============================================================
ERROR CATEGORIES
============================================================
1. CONFIGURATION  - Malformed secret, missing credentials
2. TRANSPORT      - DNS, refused connection, timeout, dropped socket
3. PROTOCOL       - Non-200 HTTP status, invalid stream frame
4. RATE_LIMIT     - Too many stream connections opened too quickly

Callers branch on the exception class. Nothing here retries.

============================================================
"""

import json
from typing import Any, Dict, Optional, Type


# ============================================================
# BASE
# ============================================================

class GDAXError(Exception):
    """Root of every error raised by the client."""


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(GDAXError):
    """
    Fatal configuration or usage error.

    Raised immediately. Retrying will not help.
    """


class RateLimitedConnectionError(ConfigurationError):
    """
    Stream connection rejected because connections are opened too fast.

    Indicates a usage-pattern bug (one connection per product) rather
    than a transient fault.
    """

    DEFAULT_MESSAGE = (
        "You are connecting too fast and are being throttled! "
        "Make sure you subscribe to multiple books on one connection."
    )

    def __init__(self, message: Optional[str] = None, status_code: int = 429):
        self.status_code = status_code
        super().__init__(message or self.DEFAULT_MESSAGE)


# ============================================================
# TRANSPORT ERRORS
# ============================================================

class TransportError(GDAXError):
    """Network-level failure before an HTTP status was received."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class RequestTimeoutError(TransportError):
    """The request did not complete within the configured timeout."""


# ============================================================
# PROTOCOL ERRORS
# ============================================================

class ProtocolError(GDAXError):
    """A stream frame could not be parsed."""

    def __init__(self, message: str, raw: Any = None):
        self.raw = raw
        super().__init__(message)


class ListenerError(GDAXError):
    """
    A listener raised while an event was being emitted.

    The original exception is available as ``__cause__`` and
    ``original``.
    """

    def __init__(self, channel: str, original: BaseException):
        self.channel = channel
        self.original = original
        super().__init__(f"Listener on '{channel}' failed: {original!r}")
        self.__cause__ = original


class HTTPError(GDAXError):
    """
    Non-200 response from the REST API.

    Attributes:
        response: Raw response body text
        status_code: HTTP status code
    """

    status: Optional[int] = None

    def __init__(self, response: str, status_code: Optional[int] = None):
        self.response = response
        self.status_code = status_code if status_code is not None else self.status
        super().__init__(self._describe())

    @property
    def payload(self) -> Any:
        """Response body decoded as JSON, or None when it is not JSON."""
        try:
            return json.loads(self.response)
        except (TypeError, ValueError):
            return None

    @property
    def message(self) -> str:
        """Exchange-provided error message when present, else raw body."""
        payload = self.payload
        if isinstance(payload, dict) and "message" in payload:
            return str(payload["message"])
        return self.response or ""

    def _describe(self) -> str:
        return f"HTTP {self.status_code}: {self.message}"


class BadRequest(HTTPError):
    status = 400


class Unauthorized(HTTPError):
    status = 401


class Forbidden(HTTPError):
    status = 403


class NotFound(HTTPError):
    status = 404


class InternalServerError(HTTPError):
    status = 500


# ============================================================
# STATUS MAPPING
# ============================================================

HTTP_ERROR_MAP: Dict[int, Type[HTTPError]] = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    500: InternalServerError,
}


def map_http_error(status_code: int, body: str) -> HTTPError:
    """
    Map a non-200 response to its typed error.

    Args:
        status_code: HTTP status code
        body: Raw response body

    Returns:
        Matching HTTPError subclass, or a generic HTTPError for
        statuses outside the known set
    """
    error_class = HTTP_ERROR_MAP.get(status_code, HTTPError)
    return error_class(body, status_code)

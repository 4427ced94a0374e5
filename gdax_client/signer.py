"""
GDAX Client - Request Signer.

============================================================
PURPOSE
============================================================
Signs private REST calls and authenticated stream subscriptions.

SIGNATURE:
    BASE64(HMAC-SHA256(base64decode(secret),
                       timestamp + METHOD + path + body))

where body is the compact JSON request body, or "?" + query string
when there is no body, or empty.

The counterparty recomputes the signature from the bytes it receives,
so the body and query used here must be the exact strings transmitted.
Use serialize_body() and encode_query() when building the request.

============================================================
"""

import base64
import binascii
import hashlib
import hmac
import json
import math
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlencode

from .errors import ConfigurationError
from .logging_utils import mask_value


# ============================================================
# CREDENTIALS
# ============================================================

@dataclass(frozen=True)
class Credentials:
    """Long-lived API credentials."""

    key: str
    secret: str
    """Base64-encoded shared secret."""
    passphrase: str

    def __post_init__(self):
        missing = [
            name for name in ("key", "secret", "passphrase")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing credential fields: {', '.join(missing)}"
            )

    def __repr__(self) -> str:
        return (
            f"Credentials(key={mask_value(self.key)!r}, "
            f"secret='***', passphrase='***')"
        )

    @property
    def secret_bytes(self) -> bytes:
        """
        Decoded secret.

        Raises:
            ConfigurationError: If the secret is not valid base64
        """
        try:
            return base64.b64decode(self.secret, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(
                "API secret is not valid base64"
            ) from e

    @classmethod
    def from_env(cls, prefix: str = "GDAX_") -> "Credentials":
        """
        Load credentials from the environment.

        Reads {prefix}API_KEY, {prefix}SECRET and {prefix}PASSPHRASE.
        """
        return cls(
            key=os.environ.get(f"{prefix}API_KEY", ""),
            secret=os.environ.get(f"{prefix}SECRET", ""),
            passphrase=os.environ.get(f"{prefix}PASSPHRASE", ""),
        )


# ============================================================
# SIGNATURE
# ============================================================

@dataclass(frozen=True)
class Signature:
    """Single-use request signature. Embeds its own timestamp."""

    key: str
    signature: str
    timestamp: float
    passphrase: str

    def to_headers(self) -> Dict[str, str]:
        """REST authentication headers."""
        return {
            "CB-ACCESS-KEY": self.key,
            "CB-ACCESS-SIGN": self.signature,
            "CB-ACCESS-TIMESTAMP": format_timestamp(self.timestamp),
            "CB-ACCESS-PASSPHRASE": self.passphrase,
        }

    def to_payload(self) -> Dict[str, Any]:
        """Fields merged into an authenticated subscribe frame."""
        return {
            "key": self.key,
            "signature": self.signature,
            "timestamp": self.timestamp,
            "passphrase": self.passphrase,
        }


# ============================================================
# CANONICALIZATION
# ============================================================

def format_timestamp(timestamp: float) -> str:
    """
    Render a timestamp the way it appears on the wire.

    Integral values have no fractional part (1000 -> "1000"); other
    values use the shortest round-trip representation.
    """
    if isinstance(timestamp, int) or (
        math.isfinite(timestamp) and float(timestamp).is_integer()
    ):
        return str(int(timestamp))
    return repr(float(timestamp))


def serialize_body(body: Union[Mapping[str, Any], list, str, None]) -> str:
    """Compact JSON body, keys in insertion order. Strings pass through."""
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    return json.dumps(body, separators=(",", ":"))


def encode_query(query: Optional[Mapping[str, Any]]) -> str:
    """URL-encode query parameters, dropping None values."""
    if not query:
        return ""
    return urlencode({k: v for k, v in query.items() if v is not None})


def build_message_body(
    body: Union[Mapping[str, Any], list, str, None] = None,
    query: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Body part of the prehash string.

    A body wins over a query. Neither gives the empty string.
    """
    if body is not None:
        return serialize_body(body)
    encoded = encode_query(query)
    if encoded:
        return "?" + encoded
    return ""


# ============================================================
# SIGNING
# ============================================================

def sign_request(
    credentials: Credentials,
    method: str,
    path: str,
    body: Union[Mapping[str, Any], list, str, None] = None,
    query: Optional[Mapping[str, Any]] = None,
    timestamp: Optional[float] = None,
) -> Signature:
    """
    Sign a single request.

    Args:
        credentials: API credentials
        method: HTTP method
        path: Relative request path, e.g. /products/BTC-USD/ticker
        body: Request body (mapping or pre-serialized JSON string)
        query: Query parameters, used only when there is no body
        timestamp: Seconds since epoch; current time when omitted

    Returns:
        Signature for this request only

    Raises:
        ConfigurationError: If the secret is not valid base64
    """
    if timestamp is None:
        timestamp = time.time()

    prehash = (
        format_timestamp(timestamp)
        + method.upper()
        + path
        + build_message_body(body, query)
    )
    digest = hmac.new(
        credentials.secret_bytes,
        prehash.encode("utf-8"),
        hashlib.sha256,
    ).digest()

    return Signature(
        key=credentials.key,
        signature=base64.b64encode(digest).decode("ascii"),
        timestamp=timestamp,
        passphrase=credentials.passphrase,
    )

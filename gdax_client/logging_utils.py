"""
GDAX Client - Secure Logging Utilities.

============================================================
PURPOSE
============================================================
Secure logging for REST requests and stream lifecycle:
- Credential masking (key, signature, passphrase)
- Structured JSON log entries
- Body hashing instead of full bodies

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log the API secret or passphrase
2. Mask the CB-ACCESS-* authentication headers
3. Mask credential fields in subscribe payloads

============================================================
"""

import hashlib
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SENSITIVE DATA
# ============================================================

SENSITIVE_HEADERS = {
    "cb-access-key",
    "cb-access-sign",
    "cb-access-passphrase",
    "authorization",
}

SENSITIVE_FIELDS = {
    "key",
    "secret",
    "signature",
    "passphrase",
}


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Mask authentication headers."""
    if not headers:
        return {}

    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = mask_value(str(value))
        else:
            masked[key] = value
    return masked


def mask_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Mask credential fields in a JSON payload (e.g. a subscribe frame)."""
    if not payload:
        return {}

    return {
        key: mask_value(str(value)) if key.lower() in SENSITIVE_FIELDS else value
        for key, value in payload.items()
    }


def hash_body(body: Optional[str]) -> Optional[str]:
    """Short digest of a serialized body."""
    if not body:
        return None
    return hashlib.sha256(body.encode("utf-8")).hexdigest()[:16]


# ============================================================
# LOG ENTRY STRUCTURES
# ============================================================

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RequestLogEntry:
    """Structured log entry for requests."""

    timestamp: str
    request_id: str
    method: str
    path: str
    query: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    body_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON logging."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


@dataclass
class ResponseLogEntry:
    """Structured log entry for responses."""

    timestamp: str
    request_id: str
    status_code: int
    latency_ms: float
    success: bool
    response_preview: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON logging."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


# ============================================================
# CLIENT LOGGER
# ============================================================

class ClientLogger:
    """
    Structured logger with automatic credential masking.

    Requests and successful responses log at DEBUG, failed responses
    at WARNING.
    """

    def __init__(self, name: str = "gdax_client.rest"):
        self._name = name
        self._logger = logging.getLogger(name)
        self._request_counter = 0

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _generate_request_id(self) -> str:
        self._request_counter += 1
        return f"{self._name}-{self._request_counter}"

    def log_request(
        self,
        method: str,
        path: str,
        query: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> str:
        """
        Log outgoing request.

        Returns:
            Request ID for correlation
        """
        request_id = self._generate_request_id()

        entry = RequestLogEntry(
            timestamp=_now(),
            request_id=request_id,
            method=method,
            path=path,
            query=query or None,
            headers=mask_headers(headers) if headers else None,
            body_hash=hash_body(body),
        )

        self._logger.debug(f"REQUEST: {entry.to_json()}")
        return request_id

    def log_response(
        self,
        request_id: str,
        status_code: int,
        latency_ms: float,
        success: bool,
        response_body: Optional[str] = None,
    ) -> None:
        """Log incoming response. Body is truncated to a preview."""
        entry = ResponseLogEntry(
            timestamp=_now(),
            request_id=request_id,
            status_code=status_code,
            latency_ms=round(latency_ms, 3),
            success=success,
            response_preview=response_body[:200] if response_body else None,
        )

        if success:
            self._logger.debug(f"RESPONSE: {entry.to_json()}")
        else:
            self._logger.warning(f"RESPONSE_ERROR: {entry.to_json()}")

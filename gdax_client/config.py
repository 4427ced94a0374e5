"""
GDAX Client - Configuration.

============================================================
PURPOSE
============================================================
Endpoints and credentials for the REST and stream clients.

ENVIRONMENT:
- GDAX_API_KEY, GDAX_SECRET, GDAX_PASSPHRASE: credentials
- GDAX_API_URI: REST base URI
- GDAX_WEBSOCKET_URI: stream endpoint
- GDAX_TIMEOUT_SECONDS: total REST request timeout

A .env file in the working directory is loaded when present.

============================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .signer import Credentials


# ============================================================
# DEFAULTS
# ============================================================

DEFAULT_API_URI = "https://api.gdax.com"
DEFAULT_WEBSOCKET_URI = "wss://ws-feed.gdax.com"
DEFAULT_USER_AGENT = "gdax-client-python"


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable client configuration.

    Shared by concurrent REST calls; nothing in it changes after
    construction.
    """

    api_uri: str = DEFAULT_API_URI
    """REST base URI, without trailing slash."""

    websocket_uri: str = DEFAULT_WEBSOCKET_URI
    """Stream endpoint."""

    credentials: Optional[Credentials] = None
    """Credentials for private calls. None for anonymous access."""

    timeout_seconds: Optional[float] = None
    """Total REST request timeout. None imposes no limit."""

    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self):
        if not self.api_uri.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid API URI: {self.api_uri}")
        if not self.websocket_uri.startswith(("ws://", "wss://")):
            raise ConfigurationError(
                f"Invalid WebSocket URI: {self.websocket_uri}"
            )
        # Paths are joined as base + "/segment".
        object.__setattr__(self, "api_uri", self.api_uri.rstrip("/"))

    @property
    def is_authenticated(self) -> bool:
        return self.credentials is not None

    @classmethod
    def from_env(cls, require_credentials: bool = False) -> "ClientConfig":
        """
        Build configuration from the environment.

        Credentials are loaded only when all three variables are set,
        unless require_credentials is True, in which case missing
        variables raise ConfigurationError.
        """
        load_dotenv()

        has_credentials = all(
            os.getenv(name)
            for name in ("GDAX_API_KEY", "GDAX_SECRET", "GDAX_PASSPHRASE")
        )
        credentials = None
        if has_credentials or require_credentials:
            credentials = Credentials.from_env()

        timeout = os.getenv("GDAX_TIMEOUT_SECONDS")

        return cls(
            api_uri=os.getenv("GDAX_API_URI", DEFAULT_API_URI),
            websocket_uri=os.getenv("GDAX_WEBSOCKET_URI", DEFAULT_WEBSOCKET_URI),
            credentials=credentials,
            timeout_seconds=float(timeout) if timeout else None,
        )

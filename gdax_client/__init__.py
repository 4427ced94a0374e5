"""
GDAX Client Package.

============================================================
PURPOSE
============================================================
Client for the GDAX trading API.

COMPONENTS:
- sign_request: HMAC request signing
- RestTransport: signed/unsigned REST requests with typed errors
- AnonClient / AuthenticatedClient: REST endpoint wrappers
- EventHub: synchronous publish/subscribe channel
- StreamClient: WebSocket feed with typed message dispatch

ERROR HANDLING:
- ConfigurationError: fatal setup errors (incl. stream rate limiting)
- TransportError: network failures
- HTTPError family: non-200 REST responses

============================================================
"""

# Signing
from .signer import (
    Credentials,
    Signature,
    sign_request,
    format_timestamp,
    serialize_body,
    encode_query,
)

# Configuration
from .config import (
    ClientConfig,
    DEFAULT_API_URI,
    DEFAULT_WEBSOCKET_URI,
)

# Errors
from .errors import (
    GDAXError,
    ConfigurationError,
    RateLimitedConnectionError,
    TransportError,
    RequestTimeoutError,
    ProtocolError,
    ListenerError,
    HTTPError,
    BadRequest,
    Unauthorized,
    Forbidden,
    NotFound,
    InternalServerError,
    map_http_error,
)

# REST
from .transport import RestTransport
from .client import (
    AnonClient,
    AuthenticatedClient,
    Accounts,
    Orders,
    Fills,
)
from .models import (
    BaseOrderArgs,
    Candle,
    MarketOrderArgs,
    LimitOrderArgs,
    StopOrderArgs,
    OrderSide,
    OrderType,
    OrderStatus,
    TimeInForce,
    SelfTradePrevention,
)

# Streaming
from .events import EventHub, Subscription
from .messages import (
    MessageKind,
    StreamMessage,
    SubscribeOptions,
    ChannelSpec,
    classify,
)
from .websocket import (
    StreamClient,
    ConnectionState,
    LifecycleEvents,
    MessageChannels,
)


__all__ = [
    # Signing
    "Credentials",
    "Signature",
    "sign_request",
    "format_timestamp",
    "serialize_body",
    "encode_query",
    # Configuration
    "ClientConfig",
    "DEFAULT_API_URI",
    "DEFAULT_WEBSOCKET_URI",
    # Errors
    "GDAXError",
    "ConfigurationError",
    "RateLimitedConnectionError",
    "TransportError",
    "RequestTimeoutError",
    "ProtocolError",
    "ListenerError",
    "HTTPError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "InternalServerError",
    "map_http_error",
    # REST
    "RestTransport",
    "AnonClient",
    "AuthenticatedClient",
    "Accounts",
    "Orders",
    "Fills",
    "BaseOrderArgs",
    "Candle",
    "MarketOrderArgs",
    "LimitOrderArgs",
    "StopOrderArgs",
    "OrderSide",
    "OrderType",
    "OrderStatus",
    "TimeInForce",
    "SelfTradePrevention",
    # Streaming
    "EventHub",
    "Subscription",
    "MessageKind",
    "StreamMessage",
    "SubscribeOptions",
    "ChannelSpec",
    "classify",
    "StreamClient",
    "ConnectionState",
    "LifecycleEvents",
    "MessageChannels",
]

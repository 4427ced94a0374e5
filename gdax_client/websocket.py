"""
GDAX Client - Stream Client.

============================================================
PURPOSE
============================================================
Owns one WebSocket connection to the market-data feed.

FEATURES:
- Subscribe handshake, signed when credentials are configured
- Typed fan-out: one EventHub per message kind plus "unknown"
- Raw fan-out: every frame on events.message, in arrival order
- Lifecycle events: open, close, error

No reconnection and no backoff. Callers own reconnect policy.

============================================================
STATE MACHINE
============================================================
DISCONNECTED -> CONNECTING -> OPEN -> SUBSCRIBED -> DISCONNECTED

connect() on a live client tears the old socket down first.
disconnect() on a DISCONNECTED client is a no-op.

============================================================
USAGE
============================================================
```python
client = StreamClient(SubscribeOptions(
    product_ids=["BTC-USD"],
    channels=["ticker", "heartbeat"],
))
client.messages.ticker.subscribe(lambda msg: print(msg["price"]))
client.events.error.subscribe(lambda err: print("error", err))
await client.connect()
await client.wait_closed()
```

============================================================
"""

import asyncio
import json
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Union

import aiohttp

from .config import DEFAULT_WEBSOCKET_URI, ClientConfig
from .errors import (
    ConfigurationError,
    ListenerError,
    ProtocolError,
    RateLimitedConnectionError,
    TransportError,
)
from .events import EventHub
from .logging_utils import mask_fields
from .messages import MessageKind, SubscribeOptions, classify
from .signer import Credentials, sign_request


logger = logging.getLogger(__name__)


RATE_LIMIT_STATUS = 429


# ============================================================
# CONNECTION STATE
# ============================================================

class ConnectionState(Enum):
    """Stream connection states."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    SUBSCRIBED = "SUBSCRIBED"


# ============================================================
# CHANNELS
# ============================================================

class LifecycleEvents:
    """
    Connection lifecycle channels.

    open/close carry the client, message carries every parsed frame,
    error carries exceptions.
    """

    def __init__(self, on_error: Callable[[str, Exception], None]):
        # Listener failures on "error" are only logged.
        self.error: EventHub[Exception] = EventHub("error")
        self.open: EventHub["StreamClient"] = EventHub("open", on_error)
        self.close: EventHub["StreamClient"] = EventHub("close", on_error)
        self.message: EventHub[Any] = EventHub("message", on_error)


class MessageChannels:
    """
    One channel per MessageKind.

    Accessible by kind (channels[MessageKind.TICKER]), by channel name
    (channels["ticker"]) or by attribute (channels.ticker).
    """

    def __init__(self, on_error: Callable[[str, Exception], None]):
        self._hubs: Dict[MessageKind, EventHub[Any]] = {
            kind: EventHub(kind.channel_name, on_error) for kind in MessageKind
        }

    def __getitem__(self, kind: Union[MessageKind, str]) -> EventHub[Any]:
        if isinstance(kind, str):
            kind = MessageKind[kind.upper()]
        return self._hubs[kind]

    def __getattr__(self, name: str) -> EventHub[Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._hubs[MessageKind[name.upper()]]
        except KeyError:
            raise AttributeError(name) from None

    def __iter__(self) -> Iterator[MessageKind]:
        return iter(self._hubs)


# ============================================================
# STREAM CLIENT
# ============================================================

class StreamClient:
    """
    Market-data stream over a single WebSocket.

    Not safe for concurrent connect()/disconnect() calls. Frames are
    dispatched on the receive task, one at a time.
    """

    def __init__(
        self,
        subscribe: SubscribeOptions,
        websocket_uri: str = DEFAULT_WEBSOCKET_URI,
        credentials: Optional[Credentials] = None,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize stream client.

        Args:
            subscribe: Products and channels sent in the handshake
            websocket_uri: Feed endpoint
            credentials: Sign the handshake when provided
            session: Externally owned aiohttp session
            clock: Timestamp source used for signing
        """
        self._subscribe = subscribe
        self._websocket_uri = websocket_uri
        self._credentials = credentials
        self._clock = clock

        self._session = session
        self._owns_session = session is None

        self._state = ConnectionState.DISCONNECTED
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._receive_task: Optional[asyncio.Task] = None

        self.events = LifecycleEvents(self._on_listener_error)
        self.messages = MessageChannels(self._on_listener_error)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        subscribe: SubscribeOptions,
        **kwargs,
    ) -> "StreamClient":
        return cls(
            subscribe,
            websocket_uri=config.websocket_uri,
            credentials=config.credentials,
            **kwargs,
        )

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._state in (
            ConnectionState.OPEN,
            ConnectionState.SUBSCRIBED,
        )

    @property
    def websocket_uri(self) -> str:
        return self._websocket_uri

    @property
    def subscribe_options(self) -> SubscribeOptions:
        return self._subscribe

    # --------------------------------------------------------
    # CONNECTION
    # --------------------------------------------------------

    async def connect(self) -> None:
        """
        Open the socket and send the subscribe handshake.

        Connection failures are emitted on events.error and leave the
        client DISCONNECTED.

        Raises:
            RateLimitedConnectionError: If the feed rejects the
                connection for opening connections too quickly
            ConfigurationError: If the secret is malformed
        """
        if self._state is not ConnectionState.DISCONNECTED:
            await self._teardown(close_session=False)

        self._state = ConnectionState.CONNECTING
        session = self._get_session()

        try:
            ws = await session.ws_connect(self._websocket_uri)
        except aiohttp.ClientResponseError as e:
            self._state = ConnectionState.DISCONNECTED
            if e.status == RATE_LIMIT_STATUS:
                logger.error(f"Stream connection throttled: {self._websocket_uri}")
                raise RateLimitedConnectionError(status_code=e.status) from e
            self._emit_transport_error(f"WebSocket handshake rejected: {e}", e)
            return
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._state = ConnectionState.DISCONNECTED
            self._emit_transport_error(f"WebSocket connection failed: {e}", e)
            return

        self._ws = ws
        self._state = ConnectionState.OPEN
        logger.info(f"WebSocket connected: {self._websocket_uri}")

        self.events.open.emit(self)
        if self._ws is not ws:
            # An open listener disconnected or reconnected.
            return

        try:
            request = self.build_subscribe_request()
        except ConfigurationError:
            await self._teardown(close_session=True)
            raise

        try:
            await ws.send_str(json.dumps(request))
        except (aiohttp.ClientError, ConnectionError) as e:
            self._emit_transport_error(f"Subscribe handshake failed: {e}", e)
            await self._teardown(close_session=True)
            return

        logger.debug(f"Subscribe sent: {mask_fields(request)}")
        self._state = ConnectionState.SUBSCRIBED
        self._receive_task = asyncio.create_task(self._receive_loop(ws))

    async def disconnect(self) -> None:
        """Close the socket. No-op when already disconnected."""
        if self._state is ConnectionState.DISCONNECTED:
            return
        await self._teardown(close_session=True)

    async def wait_closed(self) -> None:
        """Wait until the current connection ends."""
        task = self._receive_task
        if task is not None:
            await asyncio.wait({task})

    async def __aenter__(self) -> "StreamClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None)
            )
            self._owns_session = True
        return self._session

    async def _close_session(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def _teardown(self, close_session: bool) -> None:
        """Close the current socket and emit close."""
        ws, task = self._ws, self._receive_task
        self._ws = None
        self._receive_task = None
        self._state = ConnectionState.DISCONNECTED

        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if ws is not None and not ws.closed:
            await ws.close()

        if close_session:
            await self._close_session()

        logger.info("WebSocket disconnected")
        self.events.close.emit(self)

    # --------------------------------------------------------
    # HANDSHAKE
    # --------------------------------------------------------

    def build_subscribe_request(self) -> Dict[str, Any]:
        """
        Subscribe frame for the configured products and channels.

        Authenticated requests sign GET /users/self/verify when explicit
        channels are given, else GET /users/self.
        """
        request = self._subscribe.to_payload()
        if self._credentials is not None:
            signature = sign_request(
                self._credentials,
                "GET",
                self._subscribe.verify_path,
                timestamp=self._clock(),
            )
            request.update(signature.to_payload())
        return request

    # --------------------------------------------------------
    # MESSAGE HANDLING
    # --------------------------------------------------------

    async def _receive_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Dispatch frames until the socket closes."""
        error_reported = False
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._handle_frame(msg.data.decode("utf-8", errors="replace"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self._emit_transport_error(
                        f"WebSocket error: {ws.exception()}", ws.exception()
                    )
                    error_reported = True
                    break

                if self._ws is not ws:
                    break

        except (aiohttp.ClientError, ConnectionError) as e:
            self._emit_transport_error(f"WebSocket receive failed: {e}", e)
            error_reported = True

        finally:
            if self._ws is ws:
                await self._on_remote_close(ws, error_reported)

    def _handle_frame(self, raw: str) -> None:
        """Parse one frame and fan it out."""
        try:
            data = json.loads(raw)
        except ValueError as e:
            error = ProtocolError("Stream frame is not valid JSON", raw=raw)
            error.__cause__ = e
            logger.warning(f"Invalid frame: {raw[:100]}")
            self.events.error.emit(error)
            return

        message = classify(data)
        self.messages[message.kind].emit(data)
        self.events.message.emit(data)

    async def _on_remote_close(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        error_reported: bool = False,
    ) -> None:
        """
        Handle a close the client did not initiate.

        Anything other than a clean 1000 close, or a close with a
        recorded socket exception, is a dropped connection and is
        emitted on events.error before close.
        """
        close_code = ws.close_code
        exception = ws.exception()

        self._ws = None
        self._receive_task = None
        self._state = ConnectionState.DISCONNECTED

        if not ws.closed:
            await ws.close()
        await self._close_session()

        dropped = exception is not None or close_code != aiohttp.WSCloseCode.OK
        if dropped and not error_reported:
            self._emit_transport_error(
                f"WebSocket connection dropped (code={close_code}): {exception}",
                exception,
            )

        logger.info(f"WebSocket closed by remote (code={close_code})")
        self.events.close.emit(self)

    # --------------------------------------------------------
    # ERRORS
    # --------------------------------------------------------

    def _emit_transport_error(self, message: str, cause: Optional[BaseException]) -> None:
        error = TransportError(message, url=self._websocket_uri)
        error.__cause__ = cause
        logger.warning(message)
        self.events.error.emit(error)

    def _on_listener_error(self, channel: str, error: Exception) -> None:
        logger.error(f"Listener error on '{channel}': {error}", exc_info=error)
        self.events.error.emit(ListenerError(channel, error))

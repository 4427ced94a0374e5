"""
GDAX Client - Stream Message Model.

============================================================
PURPOSE
============================================================
- MessageKind: the closed set of stream message kinds, plus UNKNOWN
- classify(): route a parsed frame by its "type" discriminant
- SubscribeOptions / ChannelSpec: the subscribe handshake payload

Payload shapes are the exchange's wire contract and are passed
through as parsed dicts. Only the discriminant is inspected.

============================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union


# ============================================================
# MESSAGE KINDS
# ============================================================

class MessageKind(Enum):
    """Stream message kinds, valued by wire discriminant."""

    HEARTBEAT = "heartbeat"
    TICKER = "ticker"
    SNAPSHOT = "snapshot"
    LEVEL2 = "l2update"
    RECEIVED = "received"
    OPEN = "open"
    MATCH = "match"
    DONE = "done"
    CHANGE = "change"
    MARGIN_PROFILE_UPDATE = "margin_profile_update"
    ACTIVATE = "activate"
    ERROR = "error"
    UNKNOWN = "unknown"

    @property
    def channel_name(self) -> str:
        """Attribute name of this kind's channel on MessageChannels."""
        return self.name.lower()


DISCRIMINANT_FIELD = "type"

# Discriminant -> kind. "unknown" is not a wire tag.
KNOWN_TAGS: Dict[str, MessageKind] = {
    kind.value: kind for kind in MessageKind if kind is not MessageKind.UNKNOWN
}
KNOWN_TAGS["level2"] = MessageKind.LEVEL2


@dataclass(frozen=True)
class StreamMessage:
    """A classified inbound frame."""

    kind: MessageKind
    payload: Any
    """Parsed frame, unmodified."""

    @property
    def tag(self) -> Optional[str]:
        """Raw discriminant, if the frame carried one."""
        if isinstance(self.payload, dict):
            value = self.payload.get(DISCRIMINANT_FIELD)
            return value if isinstance(value, str) else None
        return None


def classify(payload: Any) -> StreamMessage:
    """
    Classify a parsed frame.

    Frames that are not JSON objects, lack a string discriminant, or
    carry an unrecognized one classify as UNKNOWN.
    """
    kind = MessageKind.UNKNOWN
    if isinstance(payload, dict):
        tag = payload.get(DISCRIMINANT_FIELD)
        if isinstance(tag, str):
            kind = KNOWN_TAGS.get(tag, MessageKind.UNKNOWN)
    return StreamMessage(kind=kind, payload=payload)


# ============================================================
# SUBSCRIBE REQUEST
# ============================================================

@dataclass(frozen=True)
class ChannelSpec:
    """A channel restricted to its own product list."""

    name: str
    product_ids: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {"name": self.name, "product_ids": list(self.product_ids)}


Channel = Union[str, ChannelSpec]


@dataclass(frozen=True)
class SubscribeOptions:
    """
    What to subscribe to on connect.

    Attributes:
        product_ids: Products for bare channel names
        channels: Channel names or ChannelSpec entries. None omits the
            field and subscribes to the exchange's default channel set.
            A given list, even an empty one, is sent as-is.
    """

    product_ids: Sequence[str] = ()
    channels: Optional[Sequence[Channel]] = None

    @property
    def has_channels(self) -> bool:
        return self.channels is not None

    @property
    def verify_path(self) -> str:
        """Path signed for an authenticated subscription."""
        return "/users/self/verify" if self.has_channels else "/users/self"

    def to_payload(self) -> Dict[str, Any]:
        """Unsigned subscribe frame."""
        payload: Dict[str, Any] = {
            "type": "subscribe",
            "product_ids": list(self.product_ids),
        }
        if self.has_channels:
            payload["channels"] = [
                channel.to_payload() if isinstance(channel, ChannelSpec) else channel
                for channel in self.channels
            ]
        return payload

"""
GDAX Client - REST Models.

============================================================
PURPOSE
============================================================
Request records for order placement and the Candle record built
from historic-rate rows. Response payloads are otherwise returned
as decoded JSON.

============================================================
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence


# ============================================================
# ENUMS
# ============================================================

class OrderSide(Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    LIMIT = "limit"
    MARKET = "market"
    STOP = "stop"


class OrderStatus(Enum):
    OPEN = "open"
    PENDING = "pending"
    ACTIVE = "active"
    DONE = "done"


class TimeInForce(Enum):
    GTC = "GTC"
    GTT = "GTT"
    IOC = "IOC"
    FOK = "FOK"


class SelfTradePrevention(Enum):
    DECREASE_AND_CANCEL = "dc"
    CANCEL_OLDEST = "co"
    CANCEL_NEWEST = "cn"
    CANCEL_BOTH = "cb"


# ============================================================
# ORDER ARGUMENTS
# ============================================================

def _to_wire(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass
class BaseOrderArgs(ABC):
    """Fields shared by every order type."""

    side: OrderSide
    product_id: str

    def to_body(self) -> Dict[str, Any]:
        """Request body with unset optional fields omitted."""
        body: Dict[str, Any] = {"type": self.order_type.value}
        for key, value in asdict(self).items():
            if value is not None:
                body[key] = _to_wire(value)
        return body

    @property
    @abstractmethod
    def order_type(self) -> OrderType:
        """Order type tag sent as "type"."""


@dataclass
class MarketOrderArgs(BaseOrderArgs):
    """Market order. Exactly one of size or funds should be set."""

    size: Optional[str] = None
    funds: Optional[str] = None
    client_oid: Optional[str] = None
    stp: Optional[SelfTradePrevention] = None

    def __post_init__(self):
        if self.size is None and self.funds is None:
            raise ValueError("Market order requires size or funds")

    @property
    def order_type(self) -> OrderType:
        return OrderType.MARKET


@dataclass
class LimitOrderArgs(BaseOrderArgs):
    price: str = ""
    size: str = ""
    time_in_force: Optional[TimeInForce] = None
    # "min", "hour" or "day"; only with GTT
    cancel_after: Optional[str] = None
    post_only: Optional[bool] = None
    client_oid: Optional[str] = None
    stp: Optional[SelfTradePrevention] = None

    def __post_init__(self):
        if not self.price or not self.size:
            raise ValueError("Limit order requires price and size")
        if self.cancel_after is not None and self.cancel_after not in ("min", "hour", "day"):
            raise ValueError(f"Invalid cancel_after: {self.cancel_after}")

    @property
    def order_type(self) -> OrderType:
        return OrderType.LIMIT


@dataclass
class StopOrderArgs(BaseOrderArgs):
    price: str = ""
    size: Optional[str] = None
    funds: Optional[str] = None
    client_oid: Optional[str] = None
    stp: Optional[SelfTradePrevention] = None

    def __post_init__(self):
        if not self.price:
            raise ValueError("Stop order requires price")

    @property
    def order_type(self) -> OrderType:
        return OrderType.STOP


# ============================================================
# CANDLES
# ============================================================

@dataclass(frozen=True)
class Candle:
    """One historic-rate bucket."""

    time: int
    low: float
    high: float
    open: float
    close: float
    volume: float

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "Candle":
        """Build from a [time, low, high, open, close, volume] row."""
        time, low, high, open_, close, volume = row
        return cls(
            time=time,
            low=low,
            high=high,
            open=open_,
            close=close,
            volume=volume,
        )

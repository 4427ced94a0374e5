"""
GDAX Client - REST Endpoint Wrappers.

============================================================
PURPOSE
============================================================
Thin wrappers over RestTransport. Each builds a path and an optional
query or body, and returns the decoded payload or propagates the
HTTPError raised by the transport.

- AnonClient: public market data
- AuthenticatedClient: adds accounts, orders, fills

API DOCUMENTATION: https://docs.gdax.com/

============================================================
"""

import logging
from typing import Any, Dict, List, Optional, Union

from .config import ClientConfig
from .models import (
    BaseOrderArgs,
    Candle,
    OrderStatus,
)
from .transport import RestTransport


logger = logging.getLogger(__name__)


# ============================================================
# ANONYMOUS CLIENT
# ============================================================

class AnonClient:
    """
    Public market-data endpoints.

    Usage:
        async with AnonClient() as client:
            products = await client.get_products()
    """

    def __init__(self, transport: Optional[RestTransport] = None):
        self.transport = transport or RestTransport()

    @classmethod
    def from_config(cls, config: ClientConfig) -> "AnonClient":
        return cls(RestTransport(config))

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # https://docs.gdax.com/#get-products
    async def get_products(self) -> List[Dict[str, Any]]:
        return await self.transport.request("GET", ["products"])

    # https://docs.gdax.com/#get-product-order-book
    async def get_product_order_book(
        self,
        product_id: str,
        level: int = 1,
    ) -> Dict[str, Any]:
        if level not in (1, 2, 3):
            raise ValueError(f"Invalid order book level: {level}")
        return await self.transport.request(
            "GET",
            ["products", product_id, "book"],
            query={"level": str(level)},
        )

    # https://docs.gdax.com/#get-product-ticker
    async def get_product_ticker(self, product_id: str) -> Dict[str, Any]:
        return await self.transport.request("GET", ["products", product_id, "ticker"])

    # https://docs.gdax.com/#get-trades
    async def get_trades(self, product_id: str) -> List[Dict[str, Any]]:
        return await self.transport.request("GET", ["products", product_id, "trades"])

    # https://docs.gdax.com/#get-historic-rates
    async def get_historic_rates(
        self,
        product_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        granularity: Optional[int] = None,
    ) -> List[Candle]:
        query = {
            "start": start,
            "end": end,
            "granularity": None if granularity is None else str(granularity),
        }
        rows = await self.transport.request(
            "GET",
            ["products", product_id, "candles"],
            query=query,
        )
        return [Candle.from_row(row) for row in rows or []]

    # https://docs.gdax.com/#get-24hr-stats
    async def get_24hour_stats(self, product_id: str) -> Dict[str, Any]:
        return await self.transport.request("GET", ["products", product_id, "stats"])

    # https://docs.gdax.com/#currencies
    async def get_currencies(self) -> List[Dict[str, Any]]:
        return await self.transport.request("GET", ["currencies"])

    # https://docs.gdax.com/#time
    async def get_server_time(self) -> Dict[str, Any]:
        return await self.transport.request("GET", ["time"])


# ============================================================
# AUTHENTICATED CLIENT
# ============================================================

class AuthenticatedClient(AnonClient):
    """Public endpoints plus account, order and fill endpoints."""

    def __init__(self, transport: Optional[RestTransport] = None):
        super().__init__(transport)
        self.accounts = Accounts(self.transport)
        self.orders = Orders(self.transport)
        self.fills = Fills(self.transport)


class Accounts:
    def __init__(self, transport: RestTransport):
        self._transport = transport

    async def list(self) -> List[Dict[str, Any]]:
        return await self._transport.request("GET", ["accounts"])

    async def get(self, account_id: str) -> Dict[str, Any]:
        return await self._transport.request("GET", ["accounts", account_id])

    async def get_history(self, account_id: str) -> List[Dict[str, Any]]:
        return await self._transport.request("GET", ["accounts", account_id, "ledger"])


class Orders:
    def __init__(self, transport: RestTransport):
        self._transport = transport

    async def list(
        self,
        status: Union[OrderStatus, str, None] = None,
        product_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if isinstance(status, OrderStatus):
            status = status.value
        return await self._transport.request(
            "GET",
            ["orders"],
            query={"status": status, "product_id": product_id},
        )

    async def get(self, order_id: str) -> Dict[str, Any]:
        return await self._transport.request("GET", ["orders", order_id])

    async def place(self, args: BaseOrderArgs) -> Dict[str, Any]:
        """Place a market, limit or stop order."""
        body = args.to_body()
        logger.info(
            f"Placing {body['type']} {body['side']} order on {body['product_id']}"
        )
        return await self._transport.request("POST", ["orders"], body=body)

    async def cancel(self, order_id: str) -> Any:
        return await self._transport.request("DELETE", ["orders", order_id])

    async def cancel_all(self, product_id: Optional[str] = None) -> List[str]:
        """Cancel open orders, optionally for one product. Returns cancelled ids."""
        return await self._transport.request(
            "DELETE",
            ["orders"],
            query={"product_id": product_id},
        )


class Fills:
    def __init__(self, transport: RestTransport):
        self._transport = transport

    async def list(
        self,
        order_id: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self._transport.request(
            "GET",
            ["fills"],
            query={"order_id": order_id, "product_id": product_id},
        )

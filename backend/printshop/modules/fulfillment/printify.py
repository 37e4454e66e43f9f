"""
Printify API Client.

Async client for the two Printify calls the checkout needs:
- Shipping quote for a prospective order
- Order submission

Printify API Documentation: https://developers.printify.com/
"""

from typing import Any, Protocol

import httpx
from loguru import logger

from printshop.core.errors import FulfillmentError
from printshop.modules.fulfillment.orders import OrderSubmission


class FulfillmentProvider(Protocol):
    """Narrow interface the fulfillment bridge depends on."""

    async def estimate_shipping(self, order: OrderSubmission) -> int: ...

    async def submit_order(self, order: OrderSubmission) -> str: ...


class PrintifyClient:
    """
    Printify shop API.

    Usage:
        async with PrintifyClient(token, shop_id) as client:
            cost = await client.estimate_shipping(order)
    """

    USER_AGENT = "printshop-checkout"

    def __init__(
        self,
        api_token: str,
        shop_id: int,
        base_url: str = "https://api.printify.com/v1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize Printify client.

        Args:
            api_token: Printify personal access token
            shop_id: Printify shop the orders belong to
            base_url: API root
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.api_token = api_token
        self.shop_id = shop_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

        if not api_token:
            logger.warning("PRINTIFY_API_TOKEN not configured")

    async def __aenter__(self) -> "PrintifyClient":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_token}",
                    "User-Agent": self.USER_AGENT,
                },
                timeout=self.timeout,
                transport=self.transport,
            )

    async def disconnect(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST JSON to the shop API.

        Raises:
            FulfillmentError: On transport errors, non-2xx answers or
                non-JSON bodies.
        """
        if self._client is None or self._client.is_closed:
            await self.connect()

        try:
            response = await self._client.post(endpoint, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Printify HTTP error {e.response.status_code} on {endpoint}: "
                f"{e.response.text[:500]}"
            )
            raise FulfillmentError(
                f"Printify returned {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Printify request error on {endpoint}: {e}")
            raise FulfillmentError(f"Printify unreachable: {e}") from e
        except ValueError as e:
            raise FulfillmentError("Printify returned invalid JSON") from e

    async def estimate_shipping(self, order: OrderSubmission) -> int:
        """Standard shipping cost in minor units."""
        data = await self._post(
            f"/shops/{self.shop_id}/orders/shipping.json",
            order.to_shipping_payload(),
        )
        try:
            return int(data["standard"])
        except (KeyError, TypeError, ValueError) as e:
            raise FulfillmentError(f"unexpected shipping quote: {data}") from e

    async def submit_order(self, order: OrderSubmission) -> str:
        """Submit an order; returns Printify's order id."""
        data = await self._post(
            f"/shops/{self.shop_id}/orders.json",
            order.to_order_payload(),
        )
        return str(data.get("id", ""))

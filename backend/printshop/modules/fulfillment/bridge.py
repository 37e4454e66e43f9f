"""
Fulfillment Bridge - cart items to supplier orders.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from printshop.core.errors import FulfillmentError, NotExistsError
from printshop.models.shop import CartItem, format_order_label
from printshop.modules.fulfillment.orders import (
    LineItem,
    OrderSubmission,
    Recipient,
    ShippingAddress,
)
from printshop.modules.fulfillment.printify import FulfillmentProvider

if TYPE_CHECKING:
    from printshop.modules.shop.catalog import Catalog
    from printshop.modules.shop.store import CartStore


class FulfillmentBridge:
    """
    Builds supplier orders from carts and hands them to the provider.

    Shipping quotes get one retry and then fall back to a fixed cost, so a
    flaky quote never blocks checkout. Order submission is never retried: a
    duplicate parcel is worse than a failed one that can be resubmitted by
    hand.
    """

    QUOTE_ATTEMPTS = 2

    def __init__(
        self,
        provider: FulfillmentProvider,
        store: "CartStore",
        catalog: "Catalog",
        fallback_shipping_cost: int = 850,
        shipping_method: int = 1,
    ) -> None:
        self.provider = provider
        self.store = store
        self.catalog = catalog
        self.fallback_shipping_cost = fallback_shipping_cost
        self.shipping_method = shipping_method

    def line_items(self, items: Sequence[CartItem]) -> list[LineItem]:
        """One unit per cart row."""
        return [
            LineItem(sku=self.catalog.sku(item.item_kind, item.size, item.color))
            for item in items
        ]

    def build_order(
        self,
        items: Sequence[CartItem],
        recipient: Recipient,
        label: str | None = None,
    ) -> OrderSubmission:
        return OrderSubmission(
            line_items=self.line_items(items),
            address_to=ShippingAddress.from_recipient(recipient),
            label=label,
            shipping_method=self.shipping_method,
        )

    async def estimate_shipping(
        self,
        items: Sequence[CartItem],
        recipient: Recipient,
    ) -> int:
        """
        Standard shipping cost in minor units, or the fallback cost.

        Raises:
            InvalidNameError: If the recipient has no name
        """
        order = self.build_order(items, recipient)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.QUOTE_ATTEMPTS),
                retry=retry_if_exception_type(FulfillmentError),
            ):
                with attempt:
                    return await self.provider.estimate_shipping(order)
        except RetryError as e:
            logger.warning(
                f"Shipping quote failed twice, using fallback "
                f"{self.fallback_shipping_cost}: {e.last_attempt.exception()}"
            )

        return self.fallback_shipping_cost

    async def submit_order(
        self,
        cart_id: int,
        items: Sequence[CartItem],
        recipient: Recipient,
    ) -> str:
        """
        Allocate an order label and submit the order.

        Args:
            cart_id: Cart the order is for
            items: The cart's items
            recipient: Payer name, address and email from the payment

        Returns:
            The zero-padded order label

        Raises:
            NotExistsError: If the cart is empty
            InvalidNameError: If the recipient has no name
            FulfillmentError: If the supplier rejected the order
        """
        if not items:
            raise NotExistsError(f"cart {cart_id} has no items to fulfil")

        # Validate before a label is spent on the order
        ShippingAddress.from_recipient(recipient)

        label = format_order_label(await self.store.create_order_label(cart_id))
        order = self.build_order(items, recipient, label=label)

        logger.info(f"Submitting order {label} for cart {cart_id} ({len(items)} items)")
        provider_order_id = await self.provider.submit_order(order)
        logger.info(f"Order {label} accepted by supplier as {provider_order_id or '?'}")

        return label

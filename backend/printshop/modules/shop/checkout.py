"""
Checkout Service - ties a cart, its payment intent and its order label together.

Flow:
    NO_INTENT -> INTENT_CREATED   create-payment-intent
    INTENT_CREATED -> AMOUNT_SYNCED   address-update (cart + shipping)
    AMOUNT_SYNCED -> SUCCEEDED | FAILED   payment webhook

States are observational only; the cart record stores just the intent id.
"""

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from printshop.core.errors import FulfillmentError
from printshop.modules.fulfillment.bridge import FulfillmentBridge
from printshop.modules.fulfillment.orders import Recipient
from printshop.modules.session.identity import new_session_token
from printshop.modules.shop.catalog import Catalog, to_decimal_string
from printshop.modules.shop.payment import (
    PaymentAuthorization,
    PaymentGateway,
    PaymentIntentPayload,
)
from printshop.modules.shop.store import CartStore


class CheckoutState(str, Enum):
    """Checkout progress of a cart."""

    NO_INTENT = "no_intent"
    INTENT_CREATED = "intent_created"
    AMOUNT_SYNCED = "amount_synced"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class AmountBreakdown:
    """Amounts pushed to the payment intent, in minor units."""

    status: str
    cart: int
    shipping: int

    @property
    def total(self) -> int:
        return self.cart + self.shipping

    def to_response(self) -> dict[str, str]:
        return {
            "status": self.status,
            "cart": to_decimal_string(self.cart),
            "shipping": to_decimal_string(self.shipping),
            "total": to_decimal_string(self.total),
        }


class CheckoutService:
    """
    Checkout orchestration across the cart store, the payment gateway and
    the fulfillment bridge. There is no shared transaction: each step is
    committed on its own and later steps re-read what they need.

    Usage:
        checkout = CheckoutService(store, catalog, gateway, bridge)
        intent = await checkout.create_or_reuse_intent(session_token)
    """

    def __init__(
        self,
        store: CartStore,
        catalog: Catalog,
        gateway: PaymentGateway,
        bridge: FulfillmentBridge,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.gateway = gateway
        self.bridge = bridge

    async def create_or_reuse_intent(self, session_token: str) -> PaymentAuthorization:
        """
        Size a payment intent to the current cart.

        An existing intent gets its amount updated; otherwise a new one is
        created and its id stored on the cart.

        Raises:
            NotExistsError: Session has no cart
            PaymentGatewayError: Stripe rejected the call
        """
        cart = await self.store.get_cart_by_session(session_token)
        items = await self.store.get_items(cart.id)
        amount = self.catalog.order_amount(items)

        if cart.has_payment_intent:
            intent = await self.gateway.update_intent_amount(
                cart.payment_intent_id, amount
            )
        else:
            intent = await self.gateway.create_intent(amount)
            await self.store.update_payment_intent(session_token, intent.id)

        logger.info(
            f"Cart {cart.id} {CheckoutState.INTENT_CREATED.value}: "
            f"intent {intent.id}, cart total {amount}"
        )
        return intent

    async def recompute_and_push_amount(
        self,
        payment_intent_id: str,
        recipient: Recipient,
    ) -> AmountBreakdown:
        """
        Add shipping for the given address and push cart + shipping to the intent.

        Raises:
            NotExistsError: No cart holds this intent
            PaymentGatewayError: Stripe rejected the update
        """
        cart = await self.store.get_cart_by_payment_intent(payment_intent_id)
        items = await self.store.get_items(cart.id)

        cart_total = self.catalog.order_amount(items)
        shipping = await self.bridge.estimate_shipping(items, recipient)
        intent = await self.gateway.update_intent_amount(
            payment_intent_id, cart_total + shipping
        )

        breakdown = AmountBreakdown(status=intent.status, cart=cart_total, shipping=shipping)
        logger.info(
            f"Cart {cart.id} {CheckoutState.AMOUNT_SYNCED.value}: intent "
            f"{payment_intent_id} cart={breakdown.cart} shipping={breakdown.shipping} "
            f"total={breakdown.total}"
        )
        return breakdown

    async def on_payment_succeeded(self, intent: PaymentIntentPayload) -> str:
        """
        Submit the paid cart for fulfillment, then detach it from the session.

        The session token is only rotated once the supplier accepted the
        order, so a cart whose order failed stays visible to its owner.

        Returns:
            The order label

        Raises:
            NotExistsError: No cart (or no items) for this intent
            FulfillmentError: Missing shipping details or supplier error
        """
        cart = await self.store.get_cart_by_payment_intent(intent.id)
        items = await self.store.get_items(cart.id)

        recipient = intent.recipient()
        if recipient is None:
            raise FulfillmentError(f"payment intent {intent.id} has no shipping details")

        label = await self.bridge.submit_order(cart.id, items, recipient)

        try:
            await self.store.update_session_token(cart.session_token, new_session_token())
        except Exception as e:
            logger.error(f"Order {label} placed but cart {cart.id} kept its session: {e!r}")

        logger.info(
            f"Cart {cart.id} {CheckoutState.SUCCEEDED.value}: intent {intent.id}, order {label}"
        )
        return label

    async def on_payment_failed(self, intent: PaymentIntentPayload) -> CheckoutState:
        logger.warning(
            f"Payment intent {intent.id} {CheckoutState.FAILED.value} "
            f"(status {intent.status or 'unknown'})"
        )
        return CheckoutState.FAILED

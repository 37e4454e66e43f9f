"""
Payment Service - Stripe integration.

Handles:
- Payment intent creation
- Payment intent amount updates
"""

from dataclasses import dataclass
from typing import Any, Protocol

import stripe
from loguru import logger
from pydantic import BaseModel, ConfigDict, field_validator
from starlette.concurrency import run_in_threadpool

from printshop.core.errors import PaymentGatewayError
from printshop.modules.fulfillment.orders import Address, Recipient


@dataclass
class PaymentAuthorization:
    """The parts of a payment intent the checkout flow needs."""

    id: str
    client_secret: str
    amount: int
    status: str


class ShippingDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    address: Address = Address()

    @field_validator("address", mode="before")
    @classmethod
    def _missing_address(cls, value: Any) -> Any:
        return {} if value is None else value


class PaymentIntentPayload(BaseModel):
    """Payment intent object as delivered inside a webhook event."""

    model_config = ConfigDict(extra="ignore")

    id: str
    amount: int = 0
    status: str = ""
    receipt_email: str | None = None
    shipping: ShippingDetails | None = None

    def recipient(self) -> Recipient | None:
        if self.shipping is None:
            return None
        return Recipient(
            name=self.shipping.name or "",
            address=self.shipping.address,
            email=self.receipt_email,
        )


class PaymentGateway(Protocol):
    """Narrow interface the checkout orchestrator depends on."""

    async def create_intent(self, amount: int) -> PaymentAuthorization: ...

    async def update_intent_amount(
        self,
        payment_intent_id: str,
        amount: int,
    ) -> PaymentAuthorization: ...


def payment_intent_id_from_secret(client_secret: str) -> str:
    """Client secrets look like ``pi_123_secret_abc``; the id is the prefix."""
    return client_secret.split("_secret", 1)[0]


class StripePaymentGateway:
    """
    Stripe payment intents.

    Amounts are integers in minor units (cents). SDK calls block, so they
    run in the threadpool.

    Usage:
        gateway = StripePaymentGateway(secret_key, currency="usd")
        intent = await gateway.create_intent(3000)
    """

    def __init__(self, secret_key: str, currency: str = "usd") -> None:
        """Initialize Stripe with API key."""
        stripe.api_key = secret_key
        self.currency = currency.lower()

        if not secret_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    @staticmethod
    def _authorization(intent: Any) -> PaymentAuthorization:
        return PaymentAuthorization(
            id=intent.id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            status=intent.status,
        )

    async def create_intent(self, amount: int) -> PaymentAuthorization:
        """Create a payment intent with automatic payment methods."""
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.create,
                amount=amount,
                currency=self.currency,
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating payment intent: {e}")
            raise PaymentGatewayError(str(e)) from e

        return self._authorization(intent)

    async def update_intent_amount(
        self,
        payment_intent_id: str,
        amount: int,
    ) -> PaymentAuthorization:
        """Set a new amount on an existing payment intent."""
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.modify,
                payment_intent_id,
                amount=amount,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error updating payment intent {payment_intent_id}: {e}")
            raise PaymentGatewayError(str(e)) from e

        return self._authorization(intent)

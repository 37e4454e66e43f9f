"""
Stripe Webhook Handler.

Verifies payment intent events and drives the checkout's final transition.
"""

import json
from typing import Any

import stripe
from loguru import logger
from pydantic import ValidationError

from printshop.core.errors import (
    ShopError,
    WebhookPayloadError,
    WebhookSignatureError,
)
from printshop.modules.shop.checkout import CheckoutService, CheckoutState
from printshop.modules.shop.payment import PaymentIntentPayload

SUCCEEDED_EVENTS = frozenset({"payment_intent.succeeded"})
FAILED_EVENTS = frozenset({"payment_intent.payment_failed", "payment_intent.failed"})


class PaymentWebhookHandler:
    """
    Handler for Stripe webhooks.

    Implements:
    - Stripe-Signature verification against the endpoint secret
    - Payload parsing and validation
    - Payment intent event routing

    Once the signature checks out the event is always acknowledged: a
    processing error is logged for manual reconciliation instead of making
    Stripe redeliver it.

    Usage:
        handler = PaymentWebhookHandler(secret, checkout)
        await handler.handle(body, request.headers.get("Stripe-Signature"))
    """

    def __init__(
        self,
        signing_secret: str,
        checkout: CheckoutService,
        max_body_bytes: int = 65536,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ) -> None:
        """
        Initialize webhook handler.

        Args:
            signing_secret: Stripe webhook endpoint secret (whsec_...)
            checkout: Checkout orchestration the events are routed to
            max_body_bytes: Largest body the endpoint will read
            tolerance: Maximum signature age in seconds
        """
        self.signing_secret = signing_secret
        self.checkout = checkout
        self.max_body_bytes = max_body_bytes
        self.tolerance = tolerance

        if not signing_secret:
            logger.warning(
                "STRIPE_WEBHOOK_SECRET not configured. "
                "Webhook signature verification will fail!"
            )

    def parse_event(self, payload: bytes) -> dict[str, Any]:
        """
        Parse the raw body into an event dict.

        Raises:
            WebhookPayloadError: If payload is not a JSON object
        """
        try:
            event = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Invalid JSON payload: {e}")
            raise WebhookPayloadError("invalid JSON payload") from e

        if not isinstance(event, dict):
            raise WebhookPayloadError("event is not a JSON object")
        return event

    def verify_signature(self, payload: bytes, signature_header: str | None) -> None:
        """
        Verify the Stripe-Signature header.

        Raises:
            WebhookSignatureError: Missing header, missing secret or bad signature
        """
        if not signature_header:
            raise WebhookSignatureError("missing Stripe-Signature header")
        if not self.signing_secret:
            raise WebhookSignatureError("webhook signing secret not configured")

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature_header,
                self.signing_secret,
                self.tolerance,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise WebhookSignatureError("invalid webhook signature") from e

    @staticmethod
    def parse_intent(event: dict[str, Any]) -> PaymentIntentPayload:
        """
        Extract the payment intent object of an event.

        Raises:
            WebhookPayloadError: If the object is not a usable payment intent
        """
        try:
            return PaymentIntentPayload.model_validate(event["data"]["object"])
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Malformed payment intent in {event.get('type')} event: {e}")
            raise WebhookPayloadError("malformed payment intent") from e

    async def handle(
        self,
        payload: bytes,
        signature_header: str | None,
    ) -> CheckoutState | None:
        """
        Verify and dispatch one webhook delivery.

        Returns:
            The checkout state the event led to, None for ignored events
            or failed processing

        Raises:
            WebhookPayloadError: Body or intent object unusable
            WebhookSignatureError: Signature did not verify
        """
        event = self.parse_event(payload)
        self.verify_signature(payload, signature_header)

        event_type = str(event.get("type", ""))
        if event_type in SUCCEEDED_EVENTS:
            intent = self.parse_intent(event)
            # Verified deliveries are always acknowledged
            try:
                await self.checkout.on_payment_succeeded(intent)
            except ShopError as e:
                logger.error(
                    f"Fulfillment for payment intent {intent.id} failed, "
                    f"needs manual reconciliation: {e}"
                )
                return None
            except Exception:
                logger.exception(
                    f"Processing payment intent {intent.id} crashed, "
                    f"needs manual reconciliation"
                )
                return None
            return CheckoutState.SUCCEEDED

        if event_type in FAILED_EVENTS:
            intent = self.parse_intent(event)
            try:
                return await self.checkout.on_payment_failed(intent)
            except Exception:
                logger.exception(f"Processing failed payment intent {intent.id} crashed")
                return None

        logger.info(f"Unhandled event type: {event_type}")
        return None

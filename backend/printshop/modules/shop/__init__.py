"""
Shop Module - cart and checkout.

Features:
- Configured catalog with derived SKUs and display fields
- Shopping cart persisted per session
- Checkout with Stripe payment intents
- Stripe webhook handling
"""

from printshop.modules.shop.cart import CartService
from printshop.modules.shop.catalog import Catalog, ItemSelection
from printshop.modules.shop.checkout import AmountBreakdown, CheckoutService, CheckoutState
from printshop.modules.shop.payment import (
    PaymentAuthorization,
    PaymentGateway,
    PaymentIntentPayload,
    StripePaymentGateway,
    payment_intent_id_from_secret,
)
from printshop.modules.shop.store import CartStore
from printshop.modules.shop.webhook import PaymentWebhookHandler

__all__ = [
    "AmountBreakdown",
    "CartService",
    "CartStore",
    "Catalog",
    "CheckoutService",
    "CheckoutState",
    "ItemSelection",
    "PaymentAuthorization",
    "PaymentGateway",
    "PaymentIntentPayload",
    "PaymentWebhookHandler",
    "StripePaymentGateway",
    "payment_intent_id_from_secret",
]

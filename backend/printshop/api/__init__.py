"""
API Routers.

The site router serves the storefront under the configured prefix; the
webhook router is mounted on its own listener.
"""

from fastapi import APIRouter

from printshop.api.endpoints import cart, checkout, webhooks

router = APIRouter()

router.include_router(cart.router, tags=["Cart"])
router.include_router(checkout.router, tags=["Checkout"])

webhook_router = APIRouter()

webhook_router.include_router(webhooks.router, tags=["Webhooks"])

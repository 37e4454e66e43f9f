"""
Service container.

Everything the HTTP layer needs is built here from one ``Settings`` object
and shared by the site and webhook apps for the life of the process.
"""

from loguru import logger

from printshop.core.config import Settings
from printshop.core.database import Database
from printshop.modules.fulfillment import FulfillmentBridge, FulfillmentProvider, PrintifyClient
from printshop.modules.session import CSRFProtect
from printshop.modules.shop import (
    CartService,
    CartStore,
    Catalog,
    CheckoutService,
    PaymentGateway,
    PaymentWebhookHandler,
    StripePaymentGateway,
)


class ShopServices:
    """
    Explicitly wired application services.

    Usage:
        services = ShopServices(settings)
        await services.start()
        ...
        await services.stop()

    Tests pass their own ``gateway`` and ``provider`` to keep Stripe and
    Printify out of the loop.
    """

    def __init__(
        self,
        settings: Settings,
        gateway: PaymentGateway | None = None,
        provider: FulfillmentProvider | None = None,
    ) -> None:
        self.settings = settings
        self.database = Database(settings.database_url, echo=settings.debug)
        self.store = CartStore(self.database)
        self.catalog = Catalog.from_settings(settings)
        self.csrf = CSRFProtect.from_settings(settings)

        self.gateway = gateway or StripePaymentGateway(
            settings.stripe_secret_key,
            currency=settings.shop_currency,
        )
        self.provider = provider or PrintifyClient(
            settings.printify_api_token,
            settings.printify_shop_id,
            base_url=settings.printify_base_url,
            timeout=settings.printify_timeout,
        )

        self.bridge = FulfillmentBridge(
            self.provider,
            self.store,
            self.catalog,
            fallback_shipping_cost=settings.shipping_fallback_cost,
            shipping_method=settings.printify_shipping_method,
        )
        self.carts = CartService(
            self.store,
            self.catalog,
            max_items=settings.cart_max_items,
            atomic_limit=settings.cart_atomic_item_limit,
        )
        self.checkout = CheckoutService(
            self.store,
            self.catalog,
            self.gateway,
            self.bridge,
        )
        self.webhooks = PaymentWebhookHandler(
            settings.stripe_webhook_secret,
            self.checkout,
            max_body_bytes=settings.webhook_max_body_bytes,
        )

    async def start(self) -> None:
        await self.database.connect()
        if isinstance(self.provider, PrintifyClient):
            await self.provider.connect()
        logger.info("Shop services started")

    async def stop(self) -> None:
        if isinstance(self.provider, PrintifyClient):
            await self.provider.disconnect()
        await self.database.disconnect()
        logger.info("Shop services stopped")

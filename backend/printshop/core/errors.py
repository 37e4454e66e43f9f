"""
Error taxonomy.

Store errors describe what happened to a row, validation errors describe
what was wrong with the request. HTTP handlers branch on the class.
"""


class ShopError(Exception):
    """Base class for all checkout backend errors."""


# ==================== Store ====================


class StoreError(ShopError):
    """Cart store failure."""


class DuplicateError(StoreError):
    """Record already exists."""


class NotExistsError(StoreError):
    """Row does not exist."""


class UpdateFailedError(StoreError):
    """Update affected no rows."""


class DeleteFailedError(StoreError):
    """Delete affected no rows."""


# ==================== Validation ====================


class CartValidationError(ShopError):
    """Request refers to something the shop does not accept."""


class InvalidItemError(CartValidationError):
    """Item kind, size or color is not in the catalog."""


class InvalidNameError(CartValidationError):
    """Customer name is missing."""


class CartFullError(CartValidationError):
    """Cart already holds the maximum number of items."""


# ==================== Session ====================


class SessionTokenError(ShopError):
    """A session token could not be generated."""


# ==================== External services ====================


class PaymentGatewayError(ShopError):
    """Payment processor call failed."""


class FulfillmentError(ShopError):
    """Print-on-demand supplier call failed."""


class WebhookError(ShopError):
    """Inbound webhook could not be accepted."""


class WebhookPayloadError(WebhookError):
    """Webhook body is not a valid event."""


class WebhookSignatureError(WebhookError):
    """Webhook signature does not match the shared secret."""

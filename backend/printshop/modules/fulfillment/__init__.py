"""
Fulfillment Module - print-on-demand supplier integration.

Features:
- Printify shipping quotes and order submission
- Cart to supplier order translation
"""

from printshop.modules.fulfillment.bridge import FulfillmentBridge
from printshop.modules.fulfillment.orders import Address, OrderSubmission, Recipient
from printshop.modules.fulfillment.printify import FulfillmentProvider, PrintifyClient

__all__ = [
    "Address",
    "FulfillmentBridge",
    "FulfillmentProvider",
    "OrderSubmission",
    "PrintifyClient",
    "Recipient",
]

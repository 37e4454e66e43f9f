"""
Checkout API Endpoints.

Stripe payment intent creation and amount sync for the payment form.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from printshop.api.deps import get_services, get_session_token, reject, verify_csrf
from printshop.core.errors import InvalidNameError, ShopError
from printshop.modules.fulfillment.orders import Address, Recipient
from printshop.modules.shop.payment import payment_intent_id_from_secret
from printshop.services import ShopServices

router = APIRouter()


# ==================== Schemas ====================


class AddressUpdateRequest(BaseModel):
    """Address element change as posted by the payment form."""

    client_secret: str
    name: str = ""
    address: Address = Address()
    receipt_email: str | None = None

    def recipient(self) -> Recipient:
        return Recipient(name=self.name, address=self.address, email=self.receipt_email)


# ==================== Payment intents ====================


@router.post(
    "/create-payment-intent",
    response_model=None,
    dependencies=[Depends(verify_csrf)],
)
async def create_payment_intent(
    response: Response,
    token: str = Depends(get_session_token),
    services: ShopServices = Depends(get_services),
) -> dict[str, str] | PlainTextResponse:
    """
    Create or resize the cart's payment intent.

    Returns the client secret the payment form needs.
    """
    try:
        intent = await services.checkout.create_or_reuse_intent(token)
    except InvalidNameError as e:
        return reject(response, "create_payment_intent", e)
    except ShopError as e:
        return reject(response, "create_payment_intent", e, status_code=500)
    return {"clientSecret": intent.client_secret}


@router.post(
    "/address-update",
    response_model=None,
    dependencies=[Depends(verify_csrf)],
)
async def address_update(
    update: AddressUpdateRequest,
    response: Response,
    services: ShopServices = Depends(get_services),
) -> dict[str, str] | PlainTextResponse:
    """
    Recompute shipping for the entered address and push the new total.

    Amounts are returned as decimal strings, e.g. "38.50".
    """
    payment_intent_id = payment_intent_id_from_secret(update.client_secret)
    try:
        breakdown = await services.checkout.recompute_and_push_amount(
            payment_intent_id, update.recipient()
        )
    except InvalidNameError as e:
        return reject(response, "address_update", e)
    except ShopError as e:
        return reject(response, "address_update", e, status_code=500)
    return breakdown.to_response()

"""
Cart API Endpoints.

The browser identifies itself only through the session cookie; every
response refreshes the CSRF header for that session.
"""

from typing import Any

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from printshop.api.deps import get_services, get_session_token, reject, verify_csrf
from printshop.core.errors import ShopError
from printshop.modules.shop.catalog import ItemSelection
from printshop.services import ShopServices

router = APIRouter()

SUCCESS = "Successful Request"


# ==================== Schemas ====================


class CartItemRequest(BaseModel):
    """One catalog item as selected on the product page."""

    id: str
    size: str
    color: str

    def selection(self) -> ItemSelection:
        return ItemSelection(item_kind=self.id, size=self.size, color=self.color)


# ==================== Cart ====================


@router.post("/items", status_code=201)
async def count_items(
    token: str = Depends(get_session_token),
    services: ShopServices = Depends(get_services),
) -> dict[str, int]:
    """Number of items in the caller's cart."""
    return {"items": await services.carts.count(token)}


@router.post("/retrieve_cart", status_code=201)
async def retrieve_cart(
    token: str = Depends(get_session_token),
    services: ShopServices = Depends(get_services),
) -> list[dict[str, Any]]:
    """Cart contents with display fields."""
    return await services.carts.retrieve(token)


@router.post(
    "/add_to_cart",
    status_code=201,
    response_class=PlainTextResponse,
    response_model=None,
    dependencies=[Depends(verify_csrf)],
)
async def add_to_cart(
    item: CartItemRequest,
    response: Response,
    token: str = Depends(get_session_token),
    services: ShopServices = Depends(get_services),
) -> str | PlainTextResponse:
    try:
        await services.carts.add_item(token, item.selection())
    except ShopError as e:
        return reject(response, "add_to_cart", e)
    return SUCCESS


@router.post(
    "/remove_from_cart",
    status_code=201,
    response_class=PlainTextResponse,
    response_model=None,
    dependencies=[Depends(verify_csrf)],
)
@router.post(
    "/checkout",
    status_code=201,
    response_class=PlainTextResponse,
    response_model=None,
    dependencies=[Depends(verify_csrf)],
)
async def remove_from_cart(
    item: CartItemRequest,
    response: Response,
    token: str = Depends(get_session_token),
    services: ShopServices = Depends(get_services),
) -> str | PlainTextResponse:
    try:
        await services.carts.remove_item(token, item.selection())
    except ShopError as e:
        return reject(response, "remove_from_cart", e)
    return SUCCESS

"""
Webhook Endpoints.

Handles incoming payment events from Stripe.
"""

from fastapi import APIRouter, Depends, Request, Response
from loguru import logger
from starlette.requests import ClientDisconnect

from printshop.api.deps import get_services
from printshop.core.errors import WebhookError
from printshop.services import ShopServices

router = APIRouter()


class BodyTooLarge(Exception):
    pass


async def read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, giving up once it exceeds ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise BodyTooLarge(f"declared body of {declared} bytes")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise BodyTooLarge(f"body exceeds {limit} bytes")
    return bytes(body)


@router.post("/webhook", status_code=200)
async def stripe_webhook(
    request: Request,
    services: ShopServices = Depends(get_services),
) -> Response:
    """
    Stripe Webhook Endpoint.

    Security:
    - Validates the Stripe-Signature header
    - Returns 400 on unparsable body or invalid signature
    - Returns 503 when the body cannot be read or is too large
    - Returns 200 once the signature verified, whatever processing did

    Headers Required:
    - Stripe-Signature: t=<timestamp>,v1=<signature>
    """
    handler = services.webhooks

    try:
        body = await read_limited_body(request, handler.max_body_bytes)
    except (BodyTooLarge, ClientDisconnect) as e:
        logger.error(f"Error reading webhook body: {e}")
        return Response(status_code=503)

    try:
        await handler.handle(body, request.headers.get("Stripe-Signature"))
    except WebhookError as e:
        logger.warning(f"Rejected webhook from {request.client.host if request.client else '?'}: {e}")
        return Response(status_code=400)

    return Response(status_code=200)

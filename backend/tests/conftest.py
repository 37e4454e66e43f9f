import hashlib
import hmac
import json
import time

import httpx
import pytest

from printshop.core.config import Settings
from printshop.core.errors import FulfillmentError, PaymentGatewayError
from printshop.main import create_app, create_webhook_app
from printshop.modules.session import CSRF_HEADER
from printshop.modules.shop.payment import PaymentAuthorization
from printshop.services import ShopServices

WEBHOOK_SECRET = "whsec_test_secret"


class FakeGateway:
    """In-memory stand-in for Stripe payment intents."""

    def __init__(self):
        self.intents: dict[str, PaymentAuthorization] = {}
        self.created = 0
        self.updates: list[tuple[str, int]] = []

    async def create_intent(self, amount):
        self.created += 1
        intent_id = f"pi_test{self.created}"
        self.intents[intent_id] = PaymentAuthorization(
            id=intent_id,
            client_secret=f"{intent_id}_secret_abc123",
            amount=amount,
            status="requires_payment_method",
        )
        return self.intents[intent_id]

    async def update_intent_amount(self, payment_intent_id, amount):
        if payment_intent_id not in self.intents:
            raise PaymentGatewayError(f"No such payment_intent: {payment_intent_id}")
        self.updates.append((payment_intent_id, amount))
        self.intents[payment_intent_id].amount = amount
        return self.intents[payment_intent_id]


class FakeProvider:
    """Records supplier calls; quotes fail ``quote_failures`` times first."""

    def __init__(self, shipping=450, quote_failures=0, fail_submit=False):
        self.shipping = shipping
        self.quote_failures = quote_failures
        self.fail_submit = fail_submit
        self.quote_calls = 0
        self.quotes = []
        self.orders = []

    async def estimate_shipping(self, order):
        self.quote_calls += 1
        self.quotes.append(order)
        if self.quote_calls <= self.quote_failures:
            raise FulfillmentError("quote unavailable")
        return self.shipping

    async def submit_order(self, order):
        if self.fail_submit:
            raise FulfillmentError("Printify returned 422")
        self.orders.append(order)
        return f"po_{len(self.orders)}"


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Stripe-Signature header value for ``payload``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def intent_event(
    payment_intent_id: str,
    event_type: str = "payment_intent.succeeded",
    name: str = "Ada Lovelace",
) -> bytes:
    return json.dumps(
        {
            "id": "evt_test",
            "type": event_type,
            "data": {
                "object": {
                    "id": payment_intent_id,
                    "object": "payment_intent",
                    "amount": 3450,
                    "status": "succeeded",
                    "receipt_email": "ada@example.com",
                    "shipping": {
                        "name": name,
                        "address": {
                            "line1": "12 St James's Square",
                            "line2": None,
                            "city": "London",
                            "country": "GB",
                            "postal_code": "SW1Y 4JH",
                            "state": None,
                        },
                    },
                }
            },
        }
    ).encode()


def unquote(cookie_value: str) -> str:
    """Session cookies contain '=' and travel quoted."""
    return cookie_value.strip('"')


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}",
        stripe_secret_key="",
        stripe_webhook_secret=WEBHOOK_SECRET,
        printify_api_token="",
        printify_shop_id=1234,
        csrf_secret_key="test-csrf-secret",
        csrf_protect=True,
    )


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def provider():
    return FakeProvider()


@pytest.fixture()
async def services(settings, gateway, provider):
    services = ShopServices(settings, gateway=gateway, provider=provider)
    await services.start()
    yield services
    await services.stop()


@pytest.fixture()
def store(services):
    return services.store


class Shopper:
    """Browser-like client: keeps the cookie and echoes the CSRF header."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self.csrf_token = None

    @property
    def session_token(self):
        value = self.client.cookies.get("session")
        return unquote(value) if value else None

    async def post(self, path, json=None, csrf=True):
        headers = {}
        if csrf and self.csrf_token:
            headers[CSRF_HEADER] = self.csrf_token
        response = await self.client.post(
            path, json={} if json is None else json, headers=headers
        )
        if CSRF_HEADER in response.headers:
            self.csrf_token = response.headers[CSRF_HEADER]
        return response

    async def add(self, item_kind="tshirt", size="m", color="black"):
        return await self.post(
            "/api/add_to_cart", {"id": item_kind, "size": size, "color": color}
        )

    async def remove(self, item_kind="tshirt", size="m", color="black"):
        return await self.post(
            "/api/remove_from_cart", {"id": item_kind, "size": size, "color": color}
        )


@pytest.fixture()
async def shopper(services):
    app = create_app(services, owns_services=False)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        shopper = Shopper(client)
        # First visit issues the cookie and the CSRF token
        await shopper.post("/api/items")
        yield shopper


@pytest.fixture()
async def stripe_client(services):
    app = create_webhook_app(services, owns_services=False)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

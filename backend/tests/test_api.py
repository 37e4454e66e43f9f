"""Integration tests for the storefront and webhook apps."""

import httpx
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import intent_event, sign_payload
from printshop.main import create_app
from printshop.modules.session import CSRF_HEADER, new_session_token
from printshop.modules.shop.catalog import ItemSelection
from printshop.services import ShopServices


class TestCartEndpoints:
    async def test_add_then_retrieve(self, shopper):
        response = await shopper.add("sweatshirt", "s", "black")

        assert response.status_code == 201
        assert response.text == "Successful Request"

        response = await shopper.post("/api/retrieve_cart")
        assert response.status_code == 201
        assert response.json() == [
            {
                "id": "sweatshirt",
                "size": "S",
                "color": "Black",
                "sku": "PRINTSHOP_S_S_BL",
                "display": {
                    "name": "Printshop Sweatshirt",
                    "imgsrc": "sweatshirt_black",
                    "price": "$30",
                },
            }
        ]

    async def test_item_count(self, shopper):
        await shopper.add()
        await shopper.add("hoodie", "l", "green")

        response = await shopper.post("/api/items")

        assert response.status_code == 201
        assert response.json() == {"items": 2}

    async def test_ninth_item_is_bad_request(self, shopper):
        for _ in range(8):
            assert (await shopper.add()).status_code == 201

        response = await shopper.add()

        assert response.status_code == 400
        assert response.text == "Bad Request"
        assert (await shopper.post("/api/items")).json() == {"items": 8}

    async def test_invalid_catalog_value(self, shopper):
        response = await shopper.add("tshirt", "m", "purple")

        assert response.status_code == 400
        assert (await shopper.post("/api/items")).json() == {"items": 0}

    async def test_missing_field_is_plain_400(self, shopper):
        response = await shopper.post("/api/add_to_cart", {"id": "tshirt", "size": "m"})

        assert response.status_code == 400
        assert response.text == "Bad Request"

    async def test_remove_absent_item(self, shopper):
        await shopper.add()

        response = await shopper.remove("hoodie", "m", "black")

        assert response.status_code == 400
        assert (await shopper.post("/api/items")).json() == {"items": 1}

    async def test_remove_one_duplicate(self, shopper):
        await shopper.add()
        await shopper.add()

        response = await shopper.remove()

        assert response.status_code == 201
        assert (await shopper.post("/api/items")).json() == {"items": 1}

    async def test_checkout_alias_removes(self, shopper):
        await shopper.add()

        response = await shopper.post(
            "/api/checkout", {"id": "tshirt", "size": "m", "color": "black"}
        )

        assert response.status_code == 201
        assert (await shopper.post("/api/items")).json() == {"items": 0}


class TestCSRF:
    async def test_mutation_without_header_is_forbidden(self, shopper):
        response = await shopper.post(
            "/api/add_to_cart",
            {"id": "tshirt", "size": "m", "color": "black"},
            csrf=False,
        )

        assert response.status_code == 403
        assert (await shopper.post("/api/items")).json() == {"items": 0}

    async def test_header_for_another_session_is_forbidden(self, shopper, services):
        shopper.csrf_token = services.csrf.token_for("x" * 43 + "=")

        response = await shopper.add()

        assert response.status_code == 403

    async def test_disabled_protection(self, settings, gateway, provider):
        services = ShopServices(
            settings.model_copy(update={"csrf_protect": False}),
            gateway=gateway,
            provider=provider,
        )
        await services.start()
        try:
            transport = httpx.ASGITransport(app=create_app(services, owns_services=False))
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
                response = await client.post(
                    "/api/add_to_cart", json={"id": "tshirt", "size": "m", "color": "black"}
                )
        finally:
            await services.stop()

        assert response.status_code == 201
        assert CSRF_HEADER in response.headers


class TestCheckoutEndpoints:
    async def test_create_payment_intent_twice(self, shopper, gateway):
        await shopper.add()

        first = await shopper.post("/api/create-payment-intent")
        second = await shopper.post("/api/create-payment-intent")

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json() == {"clientSecret": "pi_test1_secret_abc123"}
        assert first.headers[CSRF_HEADER]
        assert gateway.created == 1
        assert gateway.intents["pi_test1"].amount == 3000

    async def test_create_payment_intent_without_cart(self, shopper):
        response = await shopper.post("/api/create-payment-intent")

        assert response.status_code == 500
        assert response.text == "Internal Server Error"

    async def test_address_update(self, shopper, gateway):
        await shopper.add()
        secret = (await shopper.post("/api/create-payment-intent")).json()["clientSecret"]

        response = await shopper.post(
            "/api/address-update",
            {
                "client_secret": secret,
                "name": "Ada Lovelace",
                "address": {
                    "line1": "12 St James's Square",
                    "city": "London",
                    "country": "GB",
                    "postal_code": "SW1Y 4JH",
                },
                "receipt_email": "ada@example.com",
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "status": "requires_payment_method",
            "cart": "30.00",
            "shipping": "4.50",
            "total": "34.50",
        }
        assert gateway.intents["pi_test1"].amount == 3450

    async def test_address_update_issues_no_session(self, settings, gateway, provider):
        services = ShopServices(
            settings.model_copy(update={"csrf_protect": False}),
            gateway=gateway,
            provider=provider,
        )
        await services.start()
        try:
            token = new_session_token()
            await services.carts.add_item(token, ItemSelection("tshirt", "m", "black"))
            intent = await services.checkout.create_or_reuse_intent(token)

            transport = httpx.ASGITransport(app=create_app(services, owns_services=False))
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
                response = await client.post(
                    "/api/address-update",
                    json={
                        "client_secret": intent.client_secret,
                        "name": "Ada Lovelace",
                        "address": {"country": "GB"},
                    },
                )
        finally:
            await services.stop()

        assert response.status_code == 200
        assert "set-cookie" not in response.headers
        assert gateway.intents[intent.id].amount == 3450

    async def test_address_update_without_name(self, shopper):
        await shopper.add()
        secret = (await shopper.post("/api/create-payment-intent")).json()["clientSecret"]

        response = await shopper.post(
            "/api/address-update",
            {"client_secret": secret, "name": "", "address": {"country": "GB"}},
        )

        assert response.status_code == 400

    async def test_address_update_unknown_intent(self, shopper):
        response = await shopper.post(
            "/api/address-update",
            {"client_secret": "pi_nope_secret_x", "name": "Ada", "address": {}},
        )

        assert response.status_code == 500


class TestWebhookEndpoint:
    async def _checkout(self, shopper):
        await shopper.add()
        await shopper.add("hoodie", "xl", "red")
        secret = (await shopper.post("/api/create-payment-intent")).json()["clientSecret"]
        return secret.split("_secret")[0]

    async def test_payment_succeeded_clears_visible_cart(
        self, shopper, stripe_client, services, provider
    ):
        intent_id = await self._checkout(shopper)
        cart = await services.store.get_cart_by_session(shopper.session_token)
        payload = intent_event(intent_id)

        response = await stripe_client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
        )

        assert response.status_code == 200
        assert response.content == b""
        assert (await shopper.post("/api/retrieve_cart")).json() == []
        assert await services.store.get_order_labels(cart.id) == [1]
        assert provider.orders[0].label == "00001"

    async def test_invalid_signature_changes_nothing(
        self, shopper, stripe_client, services, provider
    ):
        intent_id = await self._checkout(shopper)
        cart = await services.store.get_cart_by_session(shopper.session_token)
        payload = intent_event(intent_id)

        response = await stripe_client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload, secret="whsec_wrong")},
        )

        assert response.status_code == 400
        assert provider.orders == []
        assert await services.store.get_order_labels(cart.id) == []
        assert (await shopper.post("/api/items")).json() == {"items": 2}

    async def test_bad_json(self, stripe_client):
        response = await stripe_client.post(
            "/webhook", content=b"[", headers={"Stripe-Signature": sign_payload(b"[")}
        )

        assert response.status_code == 400

    async def test_oversized_body(self, stripe_client):
        payload = b"{" + b" " * 70000 + b"}"

        response = await stripe_client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
        )

        assert response.status_code == 503

    async def test_fulfillment_failure_still_acknowledged(
        self, shopper, stripe_client, provider
    ):
        provider.fail_submit = True
        intent_id = await self._checkout(shopper)
        payload = intent_event(intent_id)

        response = await stripe_client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
        )

        assert response.status_code == 200
        assert (await shopper.post("/api/items")).json() == {"items": 2}

    async def test_database_error_after_order_still_acknowledged(
        self, shopper, stripe_client, services, provider, monkeypatch
    ):
        intent_id = await self._checkout(shopper)
        payload = intent_event(intent_id)

        async def locked(old_token, new_token):
            raise OperationalError("UPDATE carts", {}, Exception("database is locked"))

        monkeypatch.setattr(services.store, "update_session_token", locked)

        response = await stripe_client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
        )

        assert response.status_code == 200
        assert len(provider.orders) == 1

    async def test_unexpected_processing_error_still_acknowledged(
        self, shopper, stripe_client, services, provider, monkeypatch
    ):
        intent_id = await self._checkout(shopper)
        payload = intent_event(intent_id)

        async def broken(intent):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(services.checkout, "on_payment_succeeded", broken)

        response = await stripe_client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload)},
        )

        assert response.status_code == 200
        assert provider.orders == []


class TestHealth:
    def test_lifespan_and_health(self, settings, gateway, provider):
        services = ShopServices(settings, gateway=gateway, provider=provider)

        with TestClient(create_app(services)) as client:
            assert services.database.is_connected
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": settings.app_version}
        assert not services.database.is_connected

    async def test_webhook_app_health(self, stripe_client):
        response = await stripe_client.get("/health")

        assert response.json()["status"] == "healthy"

    async def test_webhook_app_has_no_site_routes(self, stripe_client):
        site = await stripe_client.post(
            "/api/add_to_cart", json={"id": "tshirt", "size": "m", "color": "black"}
        )
        webhook = await stripe_client.post("/webhook", content=b"{}")

        assert site.status_code == 404
        assert webhook.status_code == 400

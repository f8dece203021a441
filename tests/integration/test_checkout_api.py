"""Integration tests for checkout endpoints via TestClient."""

import inspect
import json

from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from protean.exceptions import ExpectedVersionError

from storefront.api import routes
from storefront.api.errors import register_exception_handlers
from storefront.api.routes import checkout_router, order_router
from storefront.order.order import Order
from storefront.payments.port import IntentStatus


def _intent(client, cart_key, address, buyer_token=None):
    response = client.post(
        "/checkout/intent",
        json={"cart_key": cart_key, "shipping_address": address, "buyer_token": buyer_token},
    )
    assert response.status_code == 201
    return response.json()


class TestQuote:
    def test_quote_reflects_applied_coupons(self, client, filled_cart, coupon):
        client.post(f"/carts/{filled_cart}/coupons", json={"coupon_code": "WELCOME10"})

        body = client.post("/checkout/quote", json={"cart_key": filled_cart}).json()

        assert body["subtotal"] == 649.0
        assert body["discount_total"] == 65.0
        assert body["total_amount"] == 584.0
        assert body["applied_coupons"][0]["code"] == "WELCOME10"

    def test_quote_for_unknown_cart_returns_404(self, client):
        response = client.post("/checkout/quote", json={"cart_key": "nobody"})
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestIntent:
    def test_intent_amount_in_minor_units(self, client, filled_cart, address, gateway):
        body = _intent(client, filled_cart, address)

        assert body["amount"] == 649.0
        assert body["amount_minor"] == 64900
        assert body["currency"] == "INR"
        assert body["gateway_order_id"].startswith("order_fake")

    def test_invalid_email_returns_400(self, client, filled_cart, address, gateway):
        response = client.post(
            "/checkout/intent",
            json={"cart_key": filled_cart, "shipping_address": {**address, "email": "nope"}},
        )
        assert response.status_code == 400
        assert gateway.calls == []

    def test_unreachable_gateway_returns_502(self, client, filled_cart, address, gateway):
        gateway.configure(should_succeed=True, reachable=False)

        response = client.post("/checkout/intent", json={"cart_key": filled_cart, "shipping_address": address})

        assert response.status_code == 502
        assert response.json()["success"] is False


class TestVerify:
    def test_verify_places_order(self, client, filled_cart, address):
        intent = _intent(client, filled_cart, address, buyer_token="guest")

        body = client.post(
            "/checkout/verify",
            json={
                "gateway_order_id": intent["gateway_order_id"],
                "gateway_payment_id": "pay_api",
                "gateway_signature": "test-signature",
            },
        ).json()

        assert body["success"] is True
        assert body["order_number"].startswith("ORD-")
        assert body["is_new_account"] is True
        assert body["session_token"]

        order = client.get(f"/orders/{body['order_id']}").json()
        assert order["payment_status"] == "Paid"
        # Three expanded cards plus the phone case
        assert len(order["lines"]) == 4

    def test_declined_payment_is_not_completed(self, client, filled_cart, address, gateway):
        intent = _intent(client, filled_cart, address)
        gateway.set_status(intent["gateway_order_id"], IntentStatus.FAILED)

        body = client.post("/checkout/verify", json={"gateway_order_id": intent["gateway_order_id"]}).json()

        assert body["success"] is False
        assert body["message"] == "Payment not completed"
        assert current_domain.repository_for(Order)._dao.query.all().total == 0

    def test_unknown_gateway_order_returns_404(self, client):
        response = client.post("/checkout/verify", json={"gateway_order_id": "order_missing"})
        assert response.status_code == 404


class TestCashOnDelivery:
    def test_cod_order(self, client, filled_cart, address):
        response = client.post("/checkout/cod", json={"cart_key": filled_cart, "shipping_address": address})

        assert response.status_code == 201
        order = client.get(f"/orders/{response.json()['order_id']}").json()
        assert order["payment_method"] == "COD"
        assert order["payment_status"] == "Pending"
        assert client.get(f"/carts/{filled_cart}").json()["lines"] == []


class TestWebhook:
    def _payload(self, gateway_order_id, event="payment.captured"):
        return json.dumps(
            {"event": event, "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": gateway_order_id}}}}
        )

    def test_bad_signature_returns_401(self, client, filled_cart, address):
        intent = _intent(client, filled_cart, address)

        response = client.post(
            "/checkout/webhook",
            content=self._payload(intent["gateway_order_id"]),
            headers={"X-Razorpay-Signature": "forged"},
        )

        assert response.status_code == 401

    def test_captured_event_is_processed(self, client, filled_cart, address):
        intent = _intent(client, filled_cart, address)

        response = client.post(
            "/checkout/webhook",
            content=self._payload(intent["gateway_order_id"]),
            headers={"X-Razorpay-Signature": "test-signature"},
        )

        assert response.json()["status"] == "processed"
        orders = current_domain.repository_for(Order)._dao.query.all().items
        assert orders[0].gateway_payment_id == "pay_hook"

    def test_other_events_are_ignored(self, client, filled_cart, address):
        intent = _intent(client, filled_cart, address)

        response = client.post(
            "/checkout/webhook",
            content=self._payload(intent["gateway_order_id"], event="refund.processed"),
            headers={"X-Razorpay-Signature": "test-signature"},
        )

        assert response.json()["status"] == "ignored"

    def test_malformed_body_returns_400(self, client):
        response = client.post(
            "/checkout/webhook",
            content='{"event": "payment.captured", ',
            headers={"X-Razorpay-Signature": "test-signature"},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "payload" in response.json()["errors"]

    def test_non_object_body_returns_400(self, client):
        response = client.post(
            "/checkout/webhook",
            content="[1, 2, 3]",
            headers={"X-Razorpay-Signature": "test-signature"},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestGatewayConfiguration:
    def test_configure_fake_gateway(self, client, gateway):
        response = client.post("/checkout/gateway/configure", json={"should_succeed": False, "reachable": True})

        assert response.status_code == 200
        assert response.json()["gateway"] == "FakeGateway"
        assert gateway.should_succeed is False

    def test_configuration_refused_in_production(self, client, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        response = client.post("/checkout/gateway/configure", json={"should_succeed": False})
        assert response.status_code == 403


class TestConcurrentModification:
    def test_stale_write_returns_409_envelope(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.post("/orders/{order_id}/cancel")
        def cancel(order_id: str):
            raise ExpectedVersionError(f"Wrong expected version: 1 (Aggregate: Order({order_id}))")

        response = TestClient(app).post("/orders/ord-1/cancel")

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "The resource was modified concurrently; retry the request",
        }


class TestBlockingRoutes:
    def test_gateway_and_carrier_routes_run_in_threadpool(self):
        blocking = {
            "/checkout/quote",
            "/checkout/intent",
            "/checkout/verify",
            "/checkout/cod",
            "/orders/{order_id}/status",
            "/orders/{order_id}/cancel",
            "/orders/{order_id}/shipment",
            "/orders/{order_id}/tracking",
        }
        endpoints = {route.path: route.endpoint for route in checkout_router.routes + order_router.routes}

        assert not [path for path in blocking if inspect.iscoroutinefunction(endpoints[path])]

    def test_webhook_verifies_off_the_event_loop(self, client, filled_cart, address, monkeypatch):
        calls = []

        async def recording_threadpool(func, *args, **kwargs):
            calls.append(func.__name__)
            return func(*args, **kwargs)

        monkeypatch.setattr(routes, "run_in_threadpool", recording_threadpool)
        intent = _intent(client, filled_cart, address)

        client.post(
            "/checkout/webhook",
            content=json.dumps({"event": "order.paid", "payload": {"order": {"entity": {"id": intent["gateway_order_id"]}}}}),
            headers={"X-Razorpay-Signature": "test-signature"},
        )

        assert calls == ["handle_webhook"]

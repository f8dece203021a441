"""Integration tests for cart and coupon endpoints via TestClient."""

from datetime import UTC, datetime, timedelta

from protean import current_domain

from storefront.coupon.coupon import Coupon


class TestCartAPI:
    def test_add_line_returns_201(self, client, phone_case):
        response = client.post(
            "/carts/guest_a/lines", json={"line_type": "item", "reference_id": str(phone_case.id), "quantity": 2}
        )
        assert response.status_code == 201
        assert "line_id" in response.json()

    def test_get_cart(self, client, filled_cart):
        body = client.get(f"/carts/{filled_cart}").json()
        assert body["subtotal"] == 649.0
        assert len(body["lines"]) == 2

    def test_get_unknown_cart_is_empty(self, client):
        body = client.get("/carts/guest_new").json()
        assert body["lines"] == []
        assert body["subtotal"] == 0

    def test_update_and_remove_line(self, client, phone_case):
        line_id = client.post(
            "/carts/guest_a/lines", json={"line_type": "item", "reference_id": str(phone_case.id)}
        ).json()["line_id"]

        assert client.put(f"/carts/guest_a/lines/{line_id}", json={"new_quantity": 3}).status_code == 200
        assert client.get("/carts/guest_a").json()["subtotal"] == 1047.0

        assert client.delete(f"/carts/guest_a/lines/{line_id}").status_code == 200
        assert client.get("/carts/guest_a").json()["lines"] == []

    def test_unknown_product_returns_404(self, client):
        response = client.post("/carts/guest_a/lines", json={"line_type": "item", "reference_id": "missing"})
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_out_of_stock_returns_400(self, client, phone_case):
        response = client.post(
            "/carts/guest_a/lines", json={"line_type": "item", "reference_id": str(phone_case.id), "quantity": 50}
        )
        assert response.status_code == 400
        assert "in stock" in response.json()["message"]

    def test_custom_design_line(self, client):
        response = client.post(
            "/carts/guest_a/lines",
            json={
                "line_type": "customDesign",
                "selected_model": "iPhone 15",
                "custom_design": {"design_image_url": "https://cdn/d.png", "phone_model": "iPhone 15"},
            },
        )
        assert response.status_code == 201
        assert client.get("/carts/guest_a").json()["subtotal"] == 499.0

    def test_custom_design_price_comes_from_configuration(self, client, monkeypatch):
        monkeypatch.setenv("CUSTOM_DESIGN_PRICE", "599")
        client.post(
            "/carts/guest_a/lines",
            json={
                "line_type": "customDesign",
                "custom_design": {"design_image_url": "https://cdn/d.png", "phone_model": "Pixel 8"},
            },
        )
        assert client.get("/carts/guest_a").json()["subtotal"] == 599.0

    def test_clear_cart(self, client, filled_cart):
        assert client.delete(f"/carts/{filled_cart}").status_code == 200
        assert client.get(f"/carts/{filled_cart}").json()["lines"] == []


class TestCouponAPI:
    def test_apply_coupon_to_cart(self, client, filled_cart, coupon):
        response = client.post(f"/carts/{filled_cart}/coupons", json={"coupon_code": "welcome10"})
        assert response.status_code == 200
        assert response.json()["discount_amount"] == 65

    def test_duplicate_coupon_returns_409(self, client, filled_cart, coupon):
        client.post(f"/carts/{filled_cart}/coupons", json={"coupon_code": "WELCOME10"})
        response = client.post(f"/carts/{filled_cart}/coupons", json={"coupon_code": "WELCOME10"})
        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "Coupon already applied",
            "errors": {"coupon_code": ["Coupon already applied"]},
        }

    def test_remove_coupon(self, client, filled_cart, coupon):
        client.post(f"/carts/{filled_cart}/coupons", json={"coupon_code": "WELCOME10"})
        assert client.delete(f"/carts/{filled_cart}/coupons/WELCOME10").status_code == 200
        assert client.get(f"/carts/{filled_cart}").json()["applied_coupons"] == []

    def test_validate_coupon(self, client, coupon):
        response = client.post("/coupons/validate", json={"coupon_code": "WELCOME10", "order_amount": 1000})
        assert response.status_code == 200
        assert response.json()["discount_amount"] == 100

    def test_validate_below_minimum_returns_400(self, client, coupon):
        current_domain.repository_for(Coupon).add(
            Coupon.create(
                code="BIG20",
                discount_percentage=20,
                minimum_amount=500,
                expiry_date=datetime.now(UTC) + timedelta(days=1),
            )
        )
        response = client.post("/coupons/validate", json={"coupon_code": "BIG20", "order_amount": 499})
        assert response.status_code == 400
        assert "Minimum order amount of 500" in response.json()["message"]

    def test_validate_unknown_coupon_returns_404(self, client):
        response = client.post("/coupons/validate", json={"coupon_code": "NOPE", "order_amount": 100})
        assert response.status_code == 404

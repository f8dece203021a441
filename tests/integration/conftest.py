import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.api.errors import register_exception_handlers
from storefront.api.routes import cart_router, checkout_router, coupon_router, leaderboard_router, order_router


@pytest.fixture()
def client(gateway, carrier):
    app = FastAPI()
    for router in (cart_router, coupon_router, checkout_router, order_router, leaderboard_router):
        app.include_router(router)
    register_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def filled_cart(client, gaming_collection, phone_case):
    """Cart ``guest_api`` with three gaming cards and one phone case: 649.00."""
    client.post("/carts/guest_api/lines", json={"line_type": "collection", "reference_id": str(gaming_collection.id), "quantity": 3})
    client.post("/carts/guest_api/lines", json={"line_type": "item", "reference_id": str(phone_case.id)})
    return "guest_api"

"""Checkout load test scenarios.

Two stateful SequentialTaskSet journeys: a guest paying online through the
fake gateway, and a guest placing a cash-on-delivery order.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import cart_key, custom_design_line, shipping_address
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CheckoutState


class _CartSteps(SequentialTaskSet):
    def on_start(self):
        self.state = CheckoutState(cart_key=cart_key())
        self.address = shipping_address()

    @task
    def add_line(self):
        with self.client.post(
            f"/carts/{self.state.cart_key}/lines",
            json=custom_design_line(),
            catch_response=True,
            name="POST /carts/[key]/lines",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Add line failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()


class OnlineCheckoutJourney(_CartSteps):
    """Add line -> Quote -> Create intent -> Verify payment."""

    @task
    def quote(self):
        with self.client.post(
            "/checkout/quote",
            json={"cart_key": self.state.cart_key},
            catch_response=True,
            name="POST /checkout/quote",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Quote failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def create_intent(self):
        with self.client.post(
            "/checkout/intent",
            json={"cart_key": self.state.cart_key, "shipping_address": self.address, "buyer_token": "guest"},
            catch_response=True,
            name="POST /checkout/intent",
        ) as resp:
            if resp.status_code == 201:
                self.state.gateway_order_id = resp.json()["gateway_order_id"]
            else:
                resp.failure(f"Create intent failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def verify(self):
        with self.client.post(
            "/checkout/verify",
            json={
                "gateway_order_id": self.state.gateway_order_id,
                "gateway_payment_id": f"pay_{self.state.gateway_order_id}",
                "gateway_signature": "test-signature",
            },
            catch_response=True,
            name="POST /checkout/verify",
        ) as resp:
            if resp.status_code == 200 and resp.json()["success"]:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Verify failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CodCheckoutJourney(_CartSteps):
    """Add line -> Place COD order -> Read order."""

    @task
    def place_cod(self):
        with self.client.post(
            "/checkout/cod",
            json={"cart_key": self.state.cart_key, "shipping_address": self.address},
            catch_response=True,
            name="POST /checkout/cod",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"COD order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def read_order(self):
        self.client.get(f"/orders/{self.state.order_id}", name="GET /orders/[id]")

    @task
    def done(self):
        self.interrupt()


class CheckoutUser(HttpUser):
    """Buyers checking out, three online payments for every COD order."""

    wait_time = between(1, 3)
    tasks = {OnlineCheckoutJourney: 3, CodCheckoutJourney: 1}

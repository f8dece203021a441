"""Tests for the Order aggregate: placement, lifecycle transitions and history."""

import pytest
from protean.exceptions import ValidationError

from storefront.order.events import OrderCancelled, OrderPaymentCollected, OrderPlaced, OrderShipmentCreated
from storefront.order.order import Actor, Order, OrderStatus, PaymentMethod, PaymentStatus

ADDRESS = {
    "name": "Asha Rao",
    "email": "asha@example.com",
    "phone": "+91 98450 12345",
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
}

PRICING = {"subtotal": 500.0, "shipping_cost": 0.0, "discount_total": 50.0, "total_amount": 450.0, "currency": "INR"}

LINES = [{"item_type": "item", "reference_id": "p1", "product_name": "Case", "unit_price": 250.0, "quantity": 2}]


def _order(**overrides):
    defaults = {
        "order_number": "ORD-2026-0001",
        "buyer_id": "acct-1",
        "lines": LINES,
        "pricing": PRICING,
        "shipping_address": ADDRESS,
    }
    defaults.update(overrides)
    return Order.place(**defaults)


def _cod_order():
    return _order(payment_method=PaymentMethod.COD, payment_status=PaymentStatus.PENDING)


class TestOrderPlacement:
    def test_place_defaults_to_confirmed_and_paid(self):
        order = _order()
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_country_defaults_to_india(self):
        assert _order().shipping_address.country == "India"

    def test_first_history_entry(self):
        history = _order().history()
        assert len(history) == 1
        assert history[0].status == OrderStatus.CONFIRMED.value
        assert history[0].updated_by == Actor.SYSTEM.value

    def test_raises_order_placed(self):
        event = _order()._events[-1]
        assert isinstance(event, OrderPlaced)
        assert event.total_amount == 450.0

    def test_requires_lines(self):
        with pytest.raises(ValidationError) as exc:
            _order(lines=[])
        assert "lines" in exc.value.messages

    def test_negative_total_is_rejected(self):
        with pytest.raises(ValidationError):
            _order(pricing={**PRICING, "total_amount": -1.0})

    def test_duplicate_coupon_codes_are_rejected(self):
        coupon = {"code": "WELCOME10", "discount_percentage": 10, "discount_amount": 50}
        with pytest.raises(ValidationError):
            _order(applied_coupons=[coupon, coupon])


class TestOrderTransitions:
    def test_forward_path_appends_history(self):
        order = _order()
        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY):
            order.transition_to(status)
        order.transition_to(OrderStatus.DELIVERED, note="Handed over")

        assert order.status == OrderStatus.DELIVERED.value
        assert [entry.status for entry in order.history()][-1] == OrderStatus.DELIVERED.value
        assert len(order.history()) == 5
        assert order.history()[-1].note == "Handed over"

    def test_shipped_may_skip_out_for_delivery(self):
        order = _order()
        order.transition_to(OrderStatus.PROCESSING)
        order.transition_to(OrderStatus.SHIPPED)
        order.transition_to(OrderStatus.DELIVERED)
        assert order.is_deletable

    def test_cannot_skip_processing(self):
        with pytest.raises(ValidationError):
            _order().transition_to(OrderStatus.SHIPPED)

    def test_refunded_is_terminal(self):
        order = _order()
        order.transition_to(OrderStatus.REFUNDED)
        with pytest.raises(ValidationError):
            order.transition_to(OrderStatus.CONFIRMED)

    def test_refunding_a_paid_order_refunds_payment(self):
        order = _order()
        order.transition_to(OrderStatus.REFUNDED)
        assert order.payment_status == PaymentStatus.REFUNDED.value

    def test_cod_payment_is_collected_on_delivery(self):
        order = _cod_order()
        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            order.transition_to(status)
        assert order.payment_status == PaymentStatus.PAID.value
        assert any(isinstance(e, OrderPaymentCollected) for e in order._events)


class TestOrderCancellation:
    def test_cancel_records_reason_and_actor(self):
        order = _order()
        order.cancel("Changed my mind", Actor.CUSTOMER)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Changed my mind"
        assert order.cancelled_by == Actor.CUSTOMER.value
        assert isinstance(order._events[-1], OrderCancelled)

    def test_delivered_order_cannot_be_cancelled(self):
        order = _order()
        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            order.transition_to(status)
        with pytest.raises(ValidationError):
            order.cancel("Too late")

    def test_cancelled_order_can_be_refunded(self):
        order = _order()
        order.cancel("Out of stock", Actor.ADMIN)
        order.transition_to(OrderStatus.REFUNDED)
        assert order.status == OrderStatus.REFUNDED.value


class TestOrderShipment:
    def test_record_shipment_from_confirmed_goes_through_processing(self):
        order = _order()
        order.record_shipment("AWB123", shipment_id="S1", courier_name="Delhivery")

        assert order.status == OrderStatus.SHIPPED.value
        assert order.awb_code == "AWB123"
        assert [entry.status for entry in order.history()][-2:] == ["Processing", "Shipped"]
        assert isinstance(order._events[-1], OrderShipmentCreated)

    def test_second_shipment_is_rejected(self):
        order = _order()
        order.record_shipment("AWB123")
        with pytest.raises(ValidationError):
            order.record_shipment("AWB456")

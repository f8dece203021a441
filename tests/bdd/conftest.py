"""Shared BDD fixtures and step definitions for the storefront."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then

from storefront.account.account import BuyerAccount
from storefront.cart.cart import Cart
from storefront.cart.lines import CartLineType
from storefront.checkout.bridge import PaymentGatewayBridge
from storefront.coupon.coupon import Coupon
from storefront.errors import CouponRejected
from storefront.order.ledger import OrderLedger
from storefront.order.order import Order, PaymentMethod, PaymentStatus

CART_KEY = "guest_bdd"

ADDRESS = {
    "name": "Asha Rao",
    "email": "asha@example.com",
    "phone": "+91 98450 12345",
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
}

PRICING = {"subtotal": 500.0, "shipping_cost": 0.0, "discount_total": 0.0, "total_amount": 500.0, "currency": "INR"}

LINES = [{"item_type": "item", "reference_id": "p1", "product_name": "Case", "unit_price": 250.0, "quantity": 2}]


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def outcome():
    """Container for step results and captured errors."""
    return {"exc": None, "applied": None, "result": None}


@pytest.fixture()
def applied_codes():
    return []


@pytest.fixture()
def bridge(settings, gateway, carrier):
    return PaymentGatewayBridge(settings, gateway, ledger=OrderLedger(carrier=carrier))


# ---------------------------------------------------------------------------
# Given steps: Coupons
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a coupon "{code}" for {percentage:d} percent off with {uses:d} uses'),
    target_fixture="bdd_coupon",
)
def _(code, percentage, uses):
    coupon = Coupon.create(
        code=code,
        discount_percentage=percentage,
        expiry_date=datetime.now(UTC) + timedelta(days=7),
        max_usage=uses,
    )
    current_domain.repository_for(Coupon).add(coupon)
    return coupon


@given(parsers.cfparse('"{code}" is already applied'))
def _(code, applied_codes):
    applied_codes.append(code)


@given(parsers.cfparse("the coupon requires a minimum order of {amount:d}"))
def _(bdd_coupon, amount):
    repo = current_domain.repository_for(Coupon)
    coupon = repo.get(bdd_coupon.id)
    coupon.minimum_amount = amount
    repo.add(coupon)


# ---------------------------------------------------------------------------
# Given steps: Orders
# ---------------------------------------------------------------------------
@given("an online order was placed", target_fixture="order")
def _():
    return Order.place(
        order_number="ORD-2026-0001", buyer_id="acct-1", lines=LINES, pricing=PRICING, shipping_address=ADDRESS
    )


@given("a cash on delivery order was placed", target_fixture="order")
def _():
    return Order.place(
        order_number="ORD-2026-0002",
        buyer_id="acct-1",
        lines=LINES,
        pricing=PRICING,
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.COD,
        payment_status=PaymentStatus.PENDING,
    )


# ---------------------------------------------------------------------------
# Given steps: Checkout
# ---------------------------------------------------------------------------
@given("a guest cart with 2 cards from the gaming collection and a phone case", target_fixture="cart")
def _(gaming_collection, phone_case):
    cart = Cart.create(CART_KEY)
    cart.add_line(
        CartLineType.COLLECTION,
        quantity=2,
        unit_price=gaming_collection.base_price,
        reference_id=str(gaming_collection.id),
        name=gaming_collection.name,
    )
    cart.add_line(CartLineType.ITEM, quantity=1, unit_price=phone_case.price, reference_id=str(phone_case.id))
    current_domain.repository_for(Cart).add(cart)
    return cart


@given("a payment intent was opened for the cart", target_fixture="intent")
def _(bridge, cart, address):
    return bridge.create_intent(cart.cart_key, address, buyer_token="guest")


# ---------------------------------------------------------------------------
# Then steps: Coupons
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the discount is {amount:d}"))
def _(outcome, amount):
    assert outcome["exc"] is None
    assert outcome["applied"].discount_amount == amount


@then(parsers.cfparse('the coupon is rejected as "{reason}"'))
def _(outcome, reason):
    assert isinstance(outcome["exc"], CouponRejected), "Expected a coupon rejection but none was raised"
    assert outcome["exc"].reason.value == reason


@then(parsers.cfparse("the coupon has been used {count:d} time"))
@then(parsers.cfparse("the coupon has been used {count:d} times"))
def _(bdd_coupon, count):
    assert current_domain.repository_for(Coupon).get(bdd_coupon.id).used_count == count


# ---------------------------------------------------------------------------
# Then steps: Orders
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert order.status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(order, status):
    assert order.payment_status == status


@then(parsers.cfparse("the history has {count:d} entry"))
@then(parsers.cfparse("the history has {count:d} entries"))
def _(order, count):
    assert len(order.history()) == count


@then("the order action fails with a validation error")
def _(outcome):
    assert outcome["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(outcome["exc"], ValidationError)


# ---------------------------------------------------------------------------
# Then steps: Checkout
# ---------------------------------------------------------------------------
@then("the checkout succeeds")
def _(outcome):
    assert outcome["result"].success is True


@then("the checkout is not completed")
def _(outcome):
    assert outcome["result"].success is False
    assert outcome["result"].message == "Payment not completed"


@then(parsers.cfparse("{count:d} order exists"))
@then(parsers.cfparse("{count:d} orders exist"))
def _(count):
    assert current_domain.repository_for(Order)._dao.query.all().total == count


@then(parsers.cfparse("a new guest account owns {count:d} cards"))
def _(outcome, count):
    assert outcome["result"].is_new_account is True
    account = current_domain.repository_for(BuyerAccount).get(outcome["result"].account_id)
    assert len(account.owned_cards()) == count


@then(parsers.cfparse("the cart still holds {count:d} lines"))
def _(count):
    assert len(current_domain.repository_for(Cart).find_by_key(CART_KEY).lines) == count

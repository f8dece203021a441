"""PaymentIntent aggregate — one online checkout attempt.

The intent freezes the priced cart (lines, coupons and totals) at the
moment the gateway order is created, so verification never trusts amounts
sent by the client. It also records which order was committed for the
gateway order id, which makes verification idempotent.

State Machine:
    QUOTED → AWAITING_PAYMENT → PAID → CONFIRMED
                              → FAILED (dead end, a new quote is required)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from storefront.checkout.events import (
    CheckoutConfirmed,
    PaymentCaptured,
    PaymentIntentCreated,
    PaymentIntentFailed,
)
from storefront.domain import storefront


class CheckoutStatus(Enum):
    QUOTED = "Quoted"
    AWAITING_PAYMENT = "AwaitingPayment"
    PAID = "Paid"
    FAILED = "Failed"
    CONFIRMED = "Confirmed"


_VALID_TRANSITIONS = {
    CheckoutStatus.QUOTED: {CheckoutStatus.AWAITING_PAYMENT},
    CheckoutStatus.AWAITING_PAYMENT: {CheckoutStatus.PAID, CheckoutStatus.FAILED},
    CheckoutStatus.PAID: {CheckoutStatus.CONFIRMED},
    CheckoutStatus.FAILED: set(),  # Terminal
    CheckoutStatus.CONFIRMED: set(),  # Terminal
}


@storefront.aggregate
class PaymentIntent:
    gateway_order_id = String(required=True, max_length=100, unique=True)
    cart_key = String(required=True, max_length=255)
    buyer_token = String(max_length=255)
    status = String(choices=CheckoutStatus, default=CheckoutStatus.QUOTED.value)
    amount = Float(required=True, min_value=0.0)
    amount_minor = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="INR")
    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount_total = Float(default=0.0)
    applied_coupons = Text()  # JSON array of AppliedCoupon snapshots
    lines = Text()  # JSON array of cart line snapshots
    shipping_address = Text()  # JSON object
    gateway_payment_id = String(max_length=100)
    order_id = Identifier()
    failure_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, gateway_order_id, cart_key, buyer_token, quote, lines, shipping_address):
        """Record a quoted cart against a freshly created gateway order.

        Args:
            quote: The ``Quote`` the gateway amount was sized from.
            lines: Cart line snapshots (list of dicts).
            shipping_address: Dict matching ``ShippingAddress``.
        """
        now = datetime.now(UTC)
        intent = cls(
            gateway_order_id=gateway_order_id,
            cart_key=cart_key,
            buyer_token=buyer_token,
            status=CheckoutStatus.QUOTED.value,
            amount=quote.total_amount,
            amount_minor=quote.amount_minor,
            currency=quote.currency,
            subtotal=quote.subtotal,
            shipping_cost=quote.shipping_cost,
            discount_total=quote.discount_total,
            applied_coupons=json.dumps([c.to_dict() for c in quote.applied_coupons]),
            lines=json.dumps(lines),
            shipping_address=json.dumps(shipping_address),
            created_at=now,
            updated_at=now,
        )
        intent._transition(CheckoutStatus.AWAITING_PAYMENT)

        intent.raise_(
            PaymentIntentCreated(
                intent_id=str(intent.id),
                gateway_order_id=gateway_order_id,
                cart_key=cart_key,
                amount=intent.amount,
                amount_minor=intent.amount_minor,
                currency=intent.currency,
            )
        )
        return intent

    # -------------------------------------------------------------------
    # Snapshot access
    # -------------------------------------------------------------------
    def line_snapshots(self) -> list[dict]:
        return json.loads(self.lines or "[]")

    def coupon_snapshots(self) -> list[dict]:
        return json.loads(self.applied_coupons or "[]")

    def address(self) -> dict:
        return json.loads(self.shipping_address or "{}")

    def pricing(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "shipping_cost": self.shipping_cost,
            "discount_total": self.discount_total,
            "total_amount": self.amount,
            "currency": self.currency,
        }

    @property
    def is_confirmed(self) -> bool:
        return CheckoutStatus(self.status) == CheckoutStatus.CONFIRMED

    @property
    def is_awaiting_payment(self) -> bool:
        return CheckoutStatus(self.status) == CheckoutStatus.AWAITING_PAYMENT

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _transition(self, target_status):
        current = CheckoutStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})
        self.status = target_status.value
        self.updated_at = datetime.now(UTC)

    def mark_paid(self, gateway_payment_id=None):
        self._transition(CheckoutStatus.PAID)
        self.gateway_payment_id = gateway_payment_id

        self.raise_(
            PaymentCaptured(
                intent_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                captured_at=self.updated_at,
            )
        )

    def mark_failed(self, reason=None):
        self._transition(CheckoutStatus.FAILED)
        self.failure_reason = reason

        self.raise_(
            PaymentIntentFailed(
                intent_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                reason=reason,
            )
        )

    def confirm(self, order_id):
        self._transition(CheckoutStatus.CONFIRMED)
        self.order_id = str(order_id)

        self.raise_(
            CheckoutConfirmed(
                intent_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                order_id=str(order_id),
            )
        )


@storefront.repository(part_of=PaymentIntent)
class PaymentIntentRepository:
    def find_by_gateway_order(self, gateway_order_id: str) -> PaymentIntent | None:
        results = self._dao.query.filter(gateway_order_id=gateway_order_id).all().items
        return results[0] if results else None

"""Order aggregate (CQRS) — the durable record of a committed checkout.

An order is written once, when payment is confirmed or immediately for
pay-on-delivery. Its lines are snapshots, so later catalogue edits never
change a historical order. Every status change appends to the status
history, which is never edited.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → OUT_FOR_DELIVERY → DELIVERED
    CANCELLED from any state before DELIVERED
    REFUNDED from any state except REFUNDED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.order.events import (
    OrderCancelled,
    OrderPaymentCollected,
    OrderPlaced,
    OrderShipmentCreated,
    OrderStatusChanged,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    PARTIALLY_REFUNDED = "Partially Refunded"


class PaymentMethod(Enum):
    ONLINE = "Online"
    COD = "COD"


class Actor(Enum):
    CUSTOMER = "Customer"
    ADMIN = "Admin"
    SYSTEM = "System"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: {
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Delivery contact and address captured at checkout."""

    name = String(required=True, max_length=255)
    email = String(required=True, max_length=254)
    phone = String(required=True, max_length=20)
    street = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="India")


@storefront.value_object(part_of="Order")
class OrderPricing:
    """Amounts locked at checkout. ``total_amount`` is floored at zero."""

    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount_total = Float(default=0.0)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default="INR")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderLine:
    """An immutable snapshot of one purchased line."""

    item_type = String(required=True, max_length=20)
    reference_id = String(max_length=100)
    source_collection_id = String(max_length=100)
    collection_name = String(max_length=255)
    collection_image = String(max_length=1024)
    product_name = String(required=True, max_length=255)
    image = String(max_length=1024)
    level = Integer()
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    selected_brand = String(max_length=100)
    phone_model = String(max_length=100)
    custom_design = Text()


@storefront.entity(part_of="Order")
class StatusEntry:
    status = String(required=True, max_length=50)
    note = String(max_length=500)
    updated_by = String(max_length=50)
    timestamp = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    order_year = Integer(required=True)
    buyer_id = Identifier(required=True)
    lines = HasMany(OrderLine)
    pricing = ValueObject(OrderPricing)
    applied_coupons = Text()  # JSON array of AppliedCoupon snapshots
    status = String(choices=OrderStatus, default=OrderStatus.CONFIRMED.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.ONLINE.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    gateway_order_id = String(max_length=100, unique=True)
    gateway_payment_id = String(max_length=100)
    shipping_address = ValueObject(ShippingAddress)
    status_history = HasMany(StatusEntry)
    awb_code = String(max_length=100)
    shipment_id = String(max_length=100)
    courier_name = String(max_length=100)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(choices=Actor)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_is_never_negative(self):
        if self.pricing is not None and self.pricing.total_amount < 0:
            raise ValidationError({"total_amount": ["Order total cannot be negative"]})

    @invariant.post
    def coupon_codes_are_unique(self):
        codes = [c["code"] for c in json.loads(self.applied_coupons or "[]")]
        if len(codes) != len(set(codes)):
            raise ValidationError({"applied_coupons": ["A coupon can only be applied once per order"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        buyer_id,
        lines,
        pricing,
        shipping_address,
        applied_coupons=(),
        payment_method=PaymentMethod.ONLINE,
        payment_status=PaymentStatus.PAID,
        gateway_order_id=None,
        gateway_payment_id=None,
        status=OrderStatus.CONFIRMED,
    ):
        """Create the order with its first history entry.

        Args:
            lines: List of dicts matching the ``OrderLine`` fields.
            pricing: Dict with subtotal, shipping_cost, discount_total,
                     total_amount and currency.
            shipping_address: Dict matching the ``ShippingAddress`` fields.
            applied_coupons: List of AppliedCoupon dicts.
        """
        if not lines:
            raise ValidationError({"lines": ["An order must contain at least one line"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            order_year=now.year,
            buyer_id=str(buyer_id),
            lines=[OrderLine(**line) for line in lines],
            pricing=OrderPricing(**pricing),
            applied_coupons=json.dumps(list(applied_coupons)),
            status=status.value,
            payment_method=payment_method.value,
            payment_status=payment_status.value,
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            shipping_address=ShippingAddress(**shipping_address),
            status_history=[
                StatusEntry(
                    status=status.value,
                    note=f"Order placed ({payment_method.value})",
                    updated_by=Actor.SYSTEM.value,
                    timestamp=now,
                )
            ],
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                buyer_id=str(buyer_id),
                status=status.value,
                payment_method=payment_method.value,
                payment_status=payment_status.value,
                total_amount=order.pricing.total_amount,
                currency=order.pricing.currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_deletable(self) -> bool:
        return OrderStatus(self.status) == OrderStatus.DELIVERED

    @property
    def has_shipment(self) -> bool:
        return bool(self.awb_code)

    def coupons(self) -> list[dict]:
        return json.loads(self.applied_coupons or "[]")

    def history(self) -> list[StatusEntry]:
        return sorted(self.status_history, key=lambda entry: entry.timestamp)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def transition_to(self, target_status: OrderStatus, note=None, actor=Actor.ADMIN):
        """Move to ``target_status`` and append one history entry."""
        self._assert_can_transition(target_status)

        previous = self.status
        now = datetime.now(UTC)
        note = note or f"Status changed to {target_status.value}"
        self.status = target_status.value
        self.add_status_history(
            StatusEntry(status=target_status.value, note=note, updated_by=actor.value, timestamp=now)
        )
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                status=target_status.value,
                note=note,
                updated_by=actor.value,
                changed_at=now,
            )
        )

        if (
            target_status == OrderStatus.DELIVERED
            and PaymentMethod(self.payment_method) == PaymentMethod.COD
            and PaymentStatus(self.payment_status) == PaymentStatus.PENDING
        ):
            self._collect_payment(now)

        if target_status == OrderStatus.REFUNDED and PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            self.payment_status = PaymentStatus.REFUNDED.value

    def _collect_payment(self, now):
        self.payment_status = PaymentStatus.PAID.value
        self.raise_(
            OrderPaymentCollected(
                order_id=str(self.id),
                amount=self.pricing.total_amount,
                collected_at=now,
            )
        )

    def cancel(self, reason, actor=Actor.CUSTOMER):
        if OrderStatus(self.status) == OrderStatus.DELIVERED:
            raise ValidationError({"status": ["Delivered orders cannot be cancelled"]})

        self.transition_to(OrderStatus.CANCELLED, note=f"Cancelled: {reason}", actor=actor)
        self.cancellation_reason = reason
        self.cancelled_by = actor.value

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_by=actor.value,
                cancelled_at=self.updated_at,
            )
        )

    def record_shipment(self, awb_code, shipment_id=None, courier_name=None, actor=Actor.ADMIN):
        """Store carrier references and move the order to Shipped."""
        if self.has_shipment:
            raise ValidationError({"awb_code": ["A shipment has already been created for this order"]})

        if OrderStatus(self.status) == OrderStatus.CONFIRMED:
            self.transition_to(OrderStatus.PROCESSING, actor=actor)

        self.awb_code = awb_code
        self.shipment_id = shipment_id
        self.courier_name = courier_name
        self.transition_to(
            OrderStatus.SHIPPED,
            note=f"Shipment created with {courier_name or 'carrier'} (AWB {awb_code})",
            actor=actor,
        )

        self.raise_(
            OrderShipmentCreated(
                order_id=str(self.id),
                awb_code=awb_code,
                shipment_id=shipment_id,
                courier_name=courier_name,
            )
        )


@storefront.repository(part_of=Order)
class OrderRepository:
    def count_for_year(self, year: int) -> int:
        return self._dao.query.filter(order_year=year).all().total

    def find_by_gateway_order(self, gateway_order_id: str) -> Order | None:
        results = self._dao.query.filter(gateway_order_id=gateway_order_id).all().items
        return results[0] if results else None

    def for_buyer(self, buyer_id: str) -> list[Order]:
        return self._dao.query.filter(buyer_id=buyer_id).order_by("-created_at").all().items

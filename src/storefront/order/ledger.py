"""Order Ledger — committing orders and driving their lifecycle.

Order numbers are sequential per calendar year (``ORD-2026-0001``). The
sequence is derived from the number of orders already placed this year; a
number taken by a concurrent commit is detected by the uniqueness check and
the next one is tried.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.exceptions import InvalidOperationError, ValidationError
from protean.utils.globals import current_domain

from storefront.order.order import Actor, Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.shipping.port import ShipmentDispatcher, TrackingResult

logger = structlog.get_logger(__name__)

MAX_NUMBERING_ATTEMPTS = 5


def format_order_number(year: int, sequence: int) -> str:
    return f"ORD-{year}-{sequence:04d}"


@dataclass(frozen=True)
class PaymentMeta:
    method: PaymentMethod
    status: PaymentStatus
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None


def shipment_snapshot(order: Order) -> dict:
    """Order details a carrier needs to book a shipment."""
    address = order.shipping_address
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "items": [
            {
                "name": line.product_name,
                "reference_id": line.reference_id,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
            }
            for line in order.lines
        ],
        "shipping_address": {
            "name": address.name,
            "email": address.email,
            "phone": address.phone,
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "postal_code": address.postal_code,
            "country": address.country,
        },
        "payment_method": order.payment_method,
        "subtotal": order.pricing.subtotal,
        "shipping_cost": order.pricing.shipping_cost,
        "discount_total": order.pricing.discount_total,
        "total_amount": order.pricing.total_amount,
    }


class OrderLedger:
    def __init__(self, carrier: ShipmentDispatcher | None = None):
        self.carrier = carrier

    def _repo(self):
        return current_domain.repository_for(Order)

    def next_order_number(self, year: int | None = None) -> str:
        year = year or datetime.now(UTC).year
        return format_order_number(year, self._repo().count_for_year(year) + 1)

    def get(self, order_id) -> Order:
        return self._repo().get(order_id)

    # -------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------
    def commit(self, buyer_id, lines, pricing, shipping_address, payment_meta: PaymentMeta, applied_coupons=()):
        repo = self._repo()
        year = datetime.now(UTC).year
        sequence = repo.count_for_year(year) + 1

        for _ in range(MAX_NUMBERING_ATTEMPTS):
            order = Order.place(
                order_number=format_order_number(year, sequence),
                buyer_id=buyer_id,
                lines=lines,
                pricing=pricing,
                shipping_address=shipping_address,
                applied_coupons=applied_coupons,
                payment_method=payment_meta.method,
                payment_status=payment_meta.status,
                gateway_order_id=payment_meta.gateway_order_id,
                gateway_payment_id=payment_meta.gateway_payment_id,
            )
            try:
                repo.add(order)
            except ValidationError as exc:
                if "order_number" not in exc.messages:
                    raise
                logger.info("order_number_taken", order_number=order.order_number)
                sequence += 1
                continue

            logger.info(
                "order_committed",
                order_id=str(order.id),
                order_number=order.order_number,
                buyer_id=str(buyer_id),
                payment_method=payment_meta.method.value,
                total_amount=order.pricing.total_amount,
            )
            return order

        raise ValidationError({"order_number": ["Could not allocate an order number"]})

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def update_status(self, order_id, status: OrderStatus, note=None, actor=Actor.ADMIN) -> Order:
        repo = self._repo()
        order = repo.get(order_id)
        if status == OrderStatus.CANCELLED:
            return self.cancel(order_id, note or "Cancelled by admin", actor)

        order.transition_to(status, note=note, actor=actor)
        repo.add(order)
        logger.info("order_status_updated", order_id=str(order_id), status=status.value, actor=actor.value)
        return order

    def cancel(self, order_id, reason, actor=Actor.CUSTOMER) -> Order:
        """Cancel an order, cancelling its shipment first when one was booked."""
        repo = self._repo()
        order = repo.get(order_id)

        if OrderStatus(order.status) == OrderStatus.DELIVERED:
            raise ValidationError({"status": ["Delivered orders cannot be cancelled"]})

        if order.has_shipment and self.carrier is not None:
            result = self.carrier.cancel_shipment(order.awb_code)
            if not result.cancelled:
                logger.warning(
                    "shipment_cancellation_failed",
                    order_id=str(order_id),
                    awb_code=order.awb_code,
                    reason=result.reason,
                )

        order.cancel(reason, actor)
        repo.add(order)
        logger.info("order_cancelled", order_id=str(order_id), actor=actor.value)
        return order

    def create_shipment(self, order_id, actor=Actor.ADMIN) -> Order:
        repo = self._repo()
        order = repo.get(order_id)
        if order.has_shipment:
            raise ValidationError({"awb_code": ["A shipment has already been created for this order"]})
        if OrderStatus(order.status) not in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING):
            raise ValidationError({"status": [f"Cannot ship an order in {order.status} state"]})

        shipment = self.carrier.create_shipment(shipment_snapshot(order))
        order.record_shipment(
            awb_code=shipment.awb_code,
            shipment_id=shipment.shipment_id,
            courier_name=shipment.courier_name,
            actor=actor,
        )
        repo.add(order)
        logger.info("order_shipped", order_id=str(order_id), awb_code=shipment.awb_code)
        return order

    def track(self, order_id) -> TrackingResult:
        order = self._repo().get(order_id)
        if not order.has_shipment:
            raise ValidationError({"awb_code": ["No shipment has been created for this order"]})
        return self.carrier.track_shipment(order.awb_code)

    def delete(self, order_id) -> None:
        repo = self._repo()
        order = repo.get(order_id)
        if not order.is_deletable:
            raise InvalidOperationError("Only delivered orders can be deleted")
        repo._dao.delete(order)
        logger.info("order_deleted", order_id=str(order_id), order_number=order.order_number)

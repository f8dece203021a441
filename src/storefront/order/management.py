"""Order administration — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.fulfillment.unlock import FulfillmentUnlockService
from storefront.order.ledger import OrderLedger
from storefront.order.order import Actor, Order, OrderStatus, PaymentStatus
from storefront.shipping import get_carrier


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    note = String(max_length=500)
    updated_by = String(choices=Actor, default=Actor.ADMIN.value)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = String(choices=Actor, default=Actor.CUSTOMER.value)


@storefront.command(part_of="Order")
class CreateShipment:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class OrderCommandHandler:
    def _ledger(self) -> OrderLedger:
        return OrderLedger(carrier=get_carrier())

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        was_paid = PaymentStatus(order.payment_status) == PaymentStatus.PAID

        order = self._ledger().update_status(
            command.order_id,
            OrderStatus(command.status),
            note=command.note,
            actor=Actor(command.updated_by),
        )

        # Cash collected on delivery: grant what the order paid for
        if not was_paid and PaymentStatus(order.payment_status) == PaymentStatus.PAID:
            FulfillmentUnlockService().apply(order.buyer_id, order)
        return order.status

    @handle(CancelOrder)
    def cancel(self, command):
        order = self._ledger().cancel(command.order_id, command.reason, Actor(command.cancelled_by))
        return order.status

    @handle(CreateShipment)
    def create_shipment(self, command):
        order = self._ledger().create_shipment(command.order_id)
        return order.awb_code

    @handle(DeleteOrder)
    def delete(self, command):
        self._ledger().delete(command.order_id)

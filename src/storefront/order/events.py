"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """An order was committed to the ledger."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    status = String(required=True)
    payment_method = String(required=True)
    payment_status = String(required=True)
    total_amount = Float(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    note = String()
    updated_by = String()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderShipmentCreated:
    """A carrier accepted the order for shipping."""

    __version__ = 1

    order_id = Identifier(required=True)
    awb_code = String(required=True)
    shipment_id = String()
    courier_name = String()


@storefront.event(part_of="Order")
class OrderPaymentCollected:
    """Payment for a pay-on-delivery order was collected."""

    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    collected_at = DateTime(required=True)

"""Domain events for the PaymentIntent aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="PaymentIntent")
class PaymentIntentCreated:
    """A gateway payment intent was opened for a priced cart."""

    __version__ = 1

    intent_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    cart_key = String(required=True)
    amount = Float(required=True)
    amount_minor = Integer(required=True)
    currency = String(required=True)


@storefront.event(part_of="PaymentIntent")
class PaymentCaptured:
    """The gateway confirmed that the intent was paid."""

    __version__ = 1

    intent_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String()
    captured_at = DateTime(required=True)


@storefront.event(part_of="PaymentIntent")
class PaymentIntentFailed:
    """The gateway reported the payment as failed."""

    __version__ = 1

    intent_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    reason = String()


@storefront.event(part_of="PaymentIntent")
class CheckoutConfirmed:
    """An order was committed for a paid intent."""

    __version__ = 1

    intent_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    order_id = Identifier(required=True)

"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Coupon")
class CouponRedeemed:
    """A coupon was consumed by a committed order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    order_ref = String(required=True)
    used_count = Integer(required=True)
    redeemed_at = DateTime(required=True)


@storefront.event(part_of="Coupon")
class CouponUsageExhausted:
    """A coupon reached its maximum usage."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    max_usage = Integer(required=True)

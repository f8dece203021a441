"""Domain events for the Cart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartLineAdded:
    """A line was added to a cart, or an existing line grew."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    line_type = String(required=True)
    reference_id = String()
    quantity = Integer(required=True)
    unit_price = Float(required=True)


@storefront.event(part_of="Cart")
class CartLineQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartLineRemoved:
    """A line was removed from a cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCouponApplied:
    """A coupon was priced into the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    discount_amount = Float(required=True)


@storefront.event(part_of="Cart")
class CartCouponRemoved:
    """A coupon was taken off the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    """All lines and coupons were removed, usually after an order was committed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    cart_key = String(required=True)
    lines_removed = Integer(required=True)

"""Cart pricing for checkout quotes."""

from dataclasses import dataclass, field

from protean.exceptions import ValidationError

from storefront.cart.cart import Cart
from storefront.config import Settings
from storefront.coupon.engine import AppliedCoupon, total_discount
from storefront.utils.money import to_minor_units


def total_amount(subtotal: float, shipping_cost: float, discounts) -> float:
    """Order total, floored at zero however large the discounts are."""
    return max(0.0, subtotal + shipping_cost - sum(discounts))


@dataclass(frozen=True)
class Quote:
    subtotal: float
    shipping_cost: float
    discount_total: float
    total_amount: float
    currency: str
    applied_coupons: tuple[AppliedCoupon, ...] = field(default_factory=tuple)

    @property
    def amount_minor(self) -> int:
        return to_minor_units(self.total_amount)

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "shipping_cost": self.shipping_cost,
            "discount_total": self.discount_total,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "applied_coupons": [c.to_dict() for c in self.applied_coupons],
        }

    def pricing(self) -> dict:
        """Amounts in the shape stored on an Order."""
        return {
            "subtotal": self.subtotal,
            "shipping_cost": self.shipping_cost,
            "discount_total": self.discount_total,
            "total_amount": self.total_amount,
            "currency": self.currency,
        }


def quote_cart(cart: Cart, settings: Settings) -> Quote:
    """Price the cart as it is stored now."""
    if cart is None or cart.is_empty:
        raise ValidationError({"cart": ["Cart is empty"]})

    coupons = cart.coupons()
    subtotal = cart.subtotal
    shipping_cost = settings.shipping_cost
    discounts = [c.discount_amount for c in coupons]

    return Quote(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        discount_total=float(total_discount(coupons)),
        total_amount=total_amount(subtotal, shipping_cost, discounts),
        currency=settings.currency,
        applied_coupons=tuple(coupons),
    )

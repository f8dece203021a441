"""Cart aggregate (CQRS) — the buyer's pending selection before checkout.

There is exactly one cart per buyer key, which is either a registered
account id or a guest token. Coupons are stored as frozen snapshots; their
discount never changes once applied. The cart is emptied when an order is
committed from it.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Integer, String, Text

from storefront.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartLineAdded,
    CartLineQuantityUpdated,
    CartLineRemoved,
)
from storefront.cart.lines import CartLineType
from storefront.coupon.coupon import normalize_code
from storefront.coupon.engine import AppliedCoupon
from storefront.domain import storefront
from storefront.errors import CouponRejected, CouponRejection


@storefront.entity(part_of="Cart")
class CartLine:
    line_type = String(required=True, choices=CartLineType)
    reference_id = String(max_length=100)  # Product or Collection id; empty for custom designs
    name = String(max_length=255)
    image = String(max_length=1024)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    selected_brand = String(max_length=100)
    selected_model = String(max_length=100)
    custom_design = Text()  # JSON payload for custom design lines
    added_at = DateTime()

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def kind(self) -> CartLineType:
        return CartLineType(self.line_type)


@storefront.aggregate
class Cart:
    cart_key = String(required=True, max_length=255, unique=True)
    lines = HasMany(CartLine)
    applied_coupons = Text()  # JSON array of AppliedCoupon snapshots
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def coupon_codes_are_unique(self):
        codes = [c["code"] for c in json.loads(self.applied_coupons or "[]")]
        if len(codes) != len(set(codes)):
            raise ValidationError({"applied_coupons": ["A coupon can only be applied once"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, cart_key):
        now = datetime.now(UTC)
        return cls(
            cart_key=cart_key,
            applied_coupons=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def subtotal(self) -> float:
        return sum(line.line_total for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def coupons(self) -> list[AppliedCoupon]:
        return [AppliedCoupon.from_dict(c) for c in json.loads(self.applied_coupons or "[]")]

    def line_snapshots(self) -> list[dict]:
        """Plain copies of the lines, as frozen into a checkout attempt."""
        return [
            {
                "line_type": line.line_type,
                "reference_id": line.reference_id,
                "name": line.name,
                "image": line.image,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "selected_brand": line.selected_brand,
                "selected_model": line.selected_model,
                "custom_design": line.custom_design,
            }
            for line in self.lines
        ]

    def find_line(self, line_id) -> CartLine:
        line = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if line is None:
            raise ValidationError({"line_id": ["Line not found in cart"]})
        return line

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(
        self,
        line_type: CartLineType,
        quantity,
        unit_price,
        reference_id=None,
        name=None,
        image=None,
        selected_brand=None,
        selected_model=None,
        custom_design=None,
    ):
        """Add a line, or grow the matching line when the same selection is already present."""
        existing = None
        if line_type != CartLineType.CUSTOM_DESIGN:
            existing = next(
                (
                    line
                    for line in self.lines
                    if line.line_type == line_type.value
                    and line.reference_id == reference_id
                    and line.selected_brand == selected_brand
                    and line.selected_model == selected_model
                ),
                None,
            )

        now = datetime.now(UTC)
        if existing:
            existing.quantity += quantity
            line = existing
        else:
            line = CartLine(
                line_type=line_type.value,
                reference_id=reference_id,
                name=name,
                image=image,
                quantity=quantity,
                unit_price=unit_price,
                selected_brand=selected_brand,
                selected_model=selected_model,
                custom_design=custom_design,
                added_at=now,
            )
            self.add_lines(line)

        self.updated_at = now

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                line_type=line_type.value,
                reference_id=reference_id,
                quantity=line.quantity,
                unit_price=unit_price,
            )
        )
        return line

    def update_line_quantity(self, line_id, new_quantity):
        line = self.find_line(line_id)
        previous_quantity = line.quantity
        line.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_line(self, line_id):
        line = self.find_line(line_id)
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line_id)))

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def apply_coupon(self, applied: AppliedCoupon):
        """Record a validated coupon snapshot."""
        coupons = json.loads(self.applied_coupons or "[]")
        if any(c["code"] == applied.code for c in coupons):
            raise CouponRejected(applied.code, CouponRejection.DUPLICATE, "Coupon already applied")

        coupons.append(applied.to_dict())
        self.applied_coupons = json.dumps(coupons)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=applied.code,
                discount_amount=applied.discount_amount,
            )
        )

    def remove_coupon(self, code):
        normalized = normalize_code(code)
        coupons = json.loads(self.applied_coupons or "[]")
        remaining = [c for c in coupons if c["code"] != normalized]
        if len(remaining) == len(coupons):
            raise ValidationError({"coupon_code": ["Coupon is not applied to this cart"]})

        self.applied_coupons = json.dumps(remaining)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=normalized))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def clear(self):
        """Remove every line and coupon."""
        lines_removed = len(self.lines)
        for line in list(self.lines):
            self.remove_lines(line)
        self.applied_coupons = json.dumps([])
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                cart_key=self.cart_key,
                lines_removed=lines_removed,
            )
        )


@storefront.repository(part_of=Cart)
class CartRepository:
    def find_by_key(self, cart_key: str) -> Cart | None:
        results = self._dao.query.filter(cart_key=cart_key).all().items
        return results[0] if results else None

    def for_key(self, cart_key: str) -> Cart:
        """Return the buyer's cart, creating an empty one on first use."""
        cart = self.find_by_key(cart_key)
        if cart is None:
            cart = Cart.create(cart_key)
        return cart

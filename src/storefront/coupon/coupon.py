"""Coupon aggregate — percentage discount codes with an expiry and a usage cap.

Coupons are created by the back office. Checkout validates them against an
order amount and redeems them exactly once per committed order.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String

from storefront.coupon.events import CouponRedeemed, CouponUsageExhausted
from storefront.domain import storefront
from storefront.errors import CouponRejected, CouponRejection
from storefront.utils.money import round_half_up


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _as_utc(value: datetime) -> datetime:
    # SQL providers hand back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@storefront.entity(part_of="Coupon")
class CouponRedemption:
    order_ref = String(required=True, max_length=100)
    redeemed_at = DateTime(required=True)


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    description = String(max_length=500)
    discount_percentage = Float(required=True, min_value=0.0, max_value=100.0)
    minimum_amount = Float(default=0.0, min_value=0.0)
    max_usage = Integer(default=1, min_value=1)
    used_count = Integer(default=0, min_value=0)
    expiry_date = DateTime(required=True)
    is_active = Boolean(default=True)
    redemptions = HasMany(CouponRedemption)

    @invariant.post
    def usage_never_exceeds_cap(self):
        if self.used_count is not None and self.max_usage is not None and self.used_count > self.max_usage:
            raise ValidationError({"used_count": ["Coupon usage cannot exceed its maximum usage"]})

    @classmethod
    def create(
        cls,
        code,
        discount_percentage,
        expiry_date,
        minimum_amount=0.0,
        max_usage=1,
        description=None,
        is_active=True,
    ):
        return cls(
            code=normalize_code(code),
            description=description,
            discount_percentage=discount_percentage,
            minimum_amount=minimum_amount,
            max_usage=max_usage,
            used_count=0,
            expiry_date=expiry_date,
            is_active=is_active,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def is_expired(self, now=None) -> bool:
        now = now or datetime.now(UTC)
        return _as_utc(self.expiry_date) <= now

    def is_exhausted(self) -> bool:
        return self.used_count >= self.max_usage

    def is_valid(self, now=None) -> bool:
        return bool(self.is_active) and not self.is_expired(now) and not self.is_exhausted()

    def rejection_for(self, order_amount, now=None):
        """Return a ``CouponRejected`` describing why the coupon cannot apply, or None."""
        if not self.is_active:
            return CouponRejected(self.code, CouponRejection.INACTIVE, "Coupon is no longer active")
        if self.is_expired(now):
            return CouponRejected(self.code, CouponRejection.EXPIRED, "Coupon has expired")
        if self.is_exhausted():
            return CouponRejected(self.code, CouponRejection.USAGE_EXCEEDED, "Coupon has reached its maximum usage")
        if order_amount < (self.minimum_amount or 0.0):
            return CouponRejected(
                self.code,
                CouponRejection.BELOW_MINIMUM,
                f"Minimum order amount of {self.minimum_amount:g} required for this coupon",
            )
        return None

    def discount_for(self, order_amount) -> int:
        return round_half_up(order_amount * self.discount_percentage / 100)

    def has_redemption_for(self, order_ref) -> bool:
        return any(r.order_ref == str(order_ref) for r in self.redemptions)

    # -------------------------------------------------------------------
    # Redemption
    # -------------------------------------------------------------------
    def redeem(self, order_ref, now=None) -> bool:
        """Consume one use of the coupon for ``order_ref``.

        Returns False when the order already redeemed this coupon. Raises
        ``CouponRejected`` when the usage cap has been reached.
        """
        if self.has_redemption_for(order_ref):
            return False

        if self.is_exhausted():
            raise CouponRejected(self.code, CouponRejection.USAGE_EXCEEDED, "Coupon has reached its maximum usage")

        now = now or datetime.now(UTC)
        self.used_count += 1
        self.add_redemptions(CouponRedemption(order_ref=str(order_ref), redeemed_at=now))

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                order_ref=str(order_ref),
                used_count=self.used_count,
                redeemed_at=now,
            )
        )
        if self.is_exhausted():
            self.raise_(
                CouponUsageExhausted(
                    coupon_id=str(self.id),
                    code=self.code,
                    max_usage=self.max_usage,
                )
            )
        return True

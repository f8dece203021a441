"""Coupon Engine — validation, discount pricing and redemption.

Discounts are frozen at apply time as ``AppliedCoupon`` snapshots. Each
snapshot is computed against the subtotal when it was applied, so the order
in which coupons are stacked never changes the total discount.
"""

from dataclasses import asdict, dataclass
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon, normalize_code
from storefront.domain import storefront
from storefront.errors import CouponRejected, CouponRejection

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AppliedCoupon:
    """Snapshot of a coupon as it was priced into a cart or order."""

    code: str
    discount_percentage: float
    discount_amount: int
    applied_at: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppliedCoupon":
        return cls(
            code=data["code"],
            discount_percentage=data["discount_percentage"],
            discount_amount=data["discount_amount"],
            applied_at=data.get("applied_at"),
        )


@storefront.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon | None:
        results = self._dao.query.filter(code=normalize_code(code)).all().items
        return results[0] if results else None


def total_discount(applied: list[AppliedCoupon]) -> int:
    return sum(coupon.discount_amount for coupon in applied)


class CouponEngine:
    """Validates and redeems coupon codes."""

    def validate(self, code: str, order_amount: float, already_applied=()) -> AppliedCoupon:
        normalized = normalize_code(code)

        applied_codes = {normalize_code(c.code if isinstance(c, AppliedCoupon) else c) for c in already_applied}
        if normalized in applied_codes:
            raise CouponRejected(normalized, CouponRejection.DUPLICATE, "Coupon already applied")

        coupon = current_domain.repository_for(Coupon).find_by_code(normalized)
        if coupon is None:
            raise ObjectNotFoundError(f"Coupon {normalized} not found")

        rejection = coupon.rejection_for(order_amount)
        if rejection is not None:
            logger.info(
                "coupon_rejected",
                coupon_code=normalized,
                reason=rejection.reason.value,
                order_amount=order_amount,
            )
            raise rejection

        return AppliedCoupon(
            code=coupon.code,
            discount_percentage=coupon.discount_percentage,
            discount_amount=coupon.discount_for(order_amount),
            applied_at=datetime.now(UTC).isoformat(),
        )

    def redeem(self, code: str, order_ref: str) -> bool:
        """Consume one use of ``code`` for ``order_ref``; repeat calls for the same order are no-ops."""
        repo = current_domain.repository_for(Coupon)
        coupon = repo.find_by_code(code)
        if coupon is None:
            raise ObjectNotFoundError(f"Coupon {normalize_code(code)} not found")

        redeemed = coupon.redeem(order_ref)
        if redeemed:
            repo.add(coupon)
            logger.info(
                "coupon_redeemed",
                coupon_code=coupon.code,
                order_ref=str(order_ref),
                used_count=coupon.used_count,
            )
        else:
            logger.info("coupon_already_redeemed", coupon_code=coupon.code, order_ref=str(order_ref))
        return redeemed

"""Storefront-specific exceptions.

Most failures use Protean's own exceptions (``ValidationError``,
``ObjectNotFoundError``, ``InvalidOperationError``). The classes here add
the detail callers need to tell rejections apart.
"""

from enum import Enum

from protean.exceptions import ValidationError


class CouponRejection(Enum):
    DUPLICATE = "duplicate"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    USAGE_EXCEEDED = "usage_exceeded"
    BELOW_MINIMUM = "below_minimum"


class CouponRejected(ValidationError):
    """A coupon could not be applied to an order amount."""

    def __init__(self, code: str, reason: CouponRejection, message: str) -> None:
        self.code = code
        self.reason = reason
        super().__init__({"coupon_code": [message]})


class NoEligibleMembers(ValidationError):
    """A collection has no gaming members carrying a level."""

    def __init__(self, collection_id: str) -> None:
        self.collection_id = collection_id
        super().__init__({"collection_id": [f"Collection {collection_id} has no eligible gaming products"]})


class GatewayError(Exception):
    """A payment gateway or shipping carrier could not be reached."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")

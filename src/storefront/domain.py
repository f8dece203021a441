"""Storefront bounded context — cart, coupons, checkout, orders and fulfillment.

A single domain keeps the whole checkout pipeline inside one request: the
cart is priced, the payment is verified, the order is committed and the
buyer's content is unlocked without crossing a context boundary.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)

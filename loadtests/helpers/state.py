"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared
between users.
"""

from dataclasses import dataclass


@dataclass
class CheckoutState:
    """Tracks one simulated buyer from cart to order."""

    cart_key: str | None = None
    gateway_order_id: str | None = None
    order_id: str | None = None
    buyer_token: str = "guest"

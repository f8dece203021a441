"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and RazorpayGateway
(production) without changing any checkout code.

Client-supplied signatures are hints only; ``fetch_intent_status`` is the
authoritative answer on whether money was captured.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class IntentStatus(Enum):
    SETTLED = "settled"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class GatewayIntent:
    """A payment intent (gateway order) awaiting the buyer's payment."""

    intent_id: str
    amount_minor: int
    currency: str
    receipt: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"

    @abstractmethod
    def create_intent(self, amount_minor: int, currency: str, receipt: str | None = None) -> GatewayIntent:
        """Create a payment intent for an amount in minor units (paise)."""
        ...

    @abstractmethod
    def fetch_intent_status(self, intent_id: str) -> IntentStatus:
        """Ask the gateway whether the intent has been paid."""
        ...

    @abstractmethod
    def verify_payment_signature(self, intent_id: str, payment_id: str, signature: str) -> bool:
        """Check the signature the checkout widget hands back to the client."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...

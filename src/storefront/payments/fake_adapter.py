"""Configurable fake payment gateway for development and testing.

This adapter simulates a real payment gateway without any external calls.
Intents settle by default; tests and the /checkout/gateway/configure
endpoint can make them fail, leave them pending, or make the gateway
unreachable.
"""

from uuid import uuid4

from storefront.errors import GatewayError
from storefront.payments.port import GatewayIntent, IntentStatus, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment declined"
        self.reachable: bool = True
        self.intents: dict[str, GatewayIntent] = {}
        self.statuses: dict[str, IntentStatus] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Payment declined", reachable: bool = True) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.reachable = reachable

    def set_status(self, intent_id: str, status: IntentStatus) -> None:
        """Pin the status reported for one intent."""
        self.statuses[intent_id] = status

    def _ensure_reachable(self) -> None:
        if not self.reachable:
            raise GatewayError(self.name, "Gateway timed out")

    def create_intent(self, amount_minor: int, currency: str, receipt: str | None = None) -> GatewayIntent:
        self.calls.append(
            {
                "method": "create_intent",
                "amount_minor": amount_minor,
                "currency": currency,
                "receipt": receipt,
            }
        )
        self._ensure_reachable()

        intent = GatewayIntent(
            intent_id=f"order_fake{uuid4().hex[:12]}",
            amount_minor=amount_minor,
            currency=currency,
            receipt=receipt,
        )
        self.intents[intent.intent_id] = intent
        return intent

    def fetch_intent_status(self, intent_id: str) -> IntentStatus:
        self.calls.append({"method": "fetch_intent_status", "intent_id": intent_id})
        self._ensure_reachable()

        if intent_id not in self.intents:
            raise GatewayError(self.name, f"Unknown order {intent_id}")
        if intent_id in self.statuses:
            return self.statuses[intent_id]
        return IntentStatus.SETTLED if self.should_succeed else IntentStatus.FAILED

    def verify_payment_signature(self, intent_id: str, payment_id: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"

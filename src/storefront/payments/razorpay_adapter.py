"""Razorpay payment gateway adapter.

Talks to the Razorpay Orders API over HTTPS with basic auth. A Razorpay
"order" is the payment intent: it is created for an amount in paise and
reports ``paid`` once a payment against it has been captured.
"""

import hashlib
import hmac

import requests
import structlog

from storefront.config import Settings
from storefront.errors import GatewayError
from storefront.payments.port import GatewayIntent, IntentStatus, PaymentGateway

logger = structlog.get_logger(__name__)


def _hmac_hex(secret: str, message: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        if not settings.gateway_key_id or not settings.gateway_key_secret:
            raise ValueError("Razorpay requires RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET")
        self.base_url = settings.gateway_base_url.rstrip("/")
        self.key_id = settings.gateway_key_id
        self.key_secret = settings.gateway_key_secret
        self.webhook_secret = settings.gateway_webhook_secret
        self.timeout = settings.gateway_timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.session.request(
                method,
                f"{self.base_url}/{path}",
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("gateway_request_failed", path=path, error=str(exc))
            raise GatewayError(self.name, str(exc)) from exc
        return response.json()

    def create_intent(self, amount_minor: int, currency: str, receipt: str | None = None) -> GatewayIntent:
        body = self._request(
            "POST",
            "orders",
            json={"amount": amount_minor, "currency": currency, "receipt": receipt},
        )
        return GatewayIntent(
            intent_id=body["id"],
            amount_minor=body.get("amount", amount_minor),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
        )

    def fetch_intent_status(self, intent_id: str) -> IntentStatus:
        body = self._request("GET", f"orders/{intent_id}")
        status = body.get("status")
        if status == "paid":
            return IntentStatus.SETTLED
        if status != "attempted":
            return IntentStatus.PENDING

        # An attempted order settles only through a captured payment
        payments = self._request("GET", f"orders/{intent_id}/payments").get("items", [])
        if any(p.get("status") == "captured" for p in payments):
            return IntentStatus.SETTLED
        if payments and all(p.get("status") == "failed" for p in payments):
            return IntentStatus.FAILED
        return IntentStatus.PENDING

    def verify_payment_signature(self, intent_id: str, payment_id: str, signature: str) -> bool:
        expected = _hmac_hex(self.key_secret, f"{intent_id}|{payment_id}")
        return hmac.compare_digest(expected, signature or "")

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        if not self.webhook_secret:
            return False
        expected = _hmac_hex(self.webhook_secret, payload)
        return hmac.compare_digest(expected, signature or "")

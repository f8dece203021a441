"""iThink Logistics carrier adapter.

Books, cancels and tracks shipments through the iThink Logistics v3 JSON
API. Every parcel is a phone wrap: 50 g per unit in a 25x15x2 cm box.
"""

from datetime import UTC, datetime

import requests
import structlog

from storefront.config import Settings
from storefront.errors import GatewayError
from storefront.shipping.port import (
    CancellationResult,
    ShipmentDispatcher,
    ShipmentResult,
    TrackingResult,
)

logger = structlog.get_logger(__name__)

UNIT_WEIGHT_KG = 0.05
PARCEL_DIMENSIONS_CM = {"length": 25, "breadth": 15, "height": 2}


class IThinkCarrier(ShipmentDispatcher):
    provider = "ithink"

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        if not settings.ithink_api_url or not settings.ithink_api_key or not settings.ithink_secret_key:
            raise ValueError("iThink Logistics requires ITHINK_API_URL, ITHINK_API_KEY and ITHINK_SECRET_KEY")
        self.base_url = settings.ithink_api_url.rstrip("/")
        self.api_key = settings.ithink_api_key
        self.secret_key = settings.ithink_secret_key
        self.pickup_location = settings.pickup_location
        self.timeout = settings.carrier_timeout
        self.session = session or requests.Session()

    @property
    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "Secret-Key": self.secret_key,
        }

    def _post(self, path: str, payload: dict) -> dict:
        try:
            response = self.session.post(
                f"{self.base_url}/{path}",
                json=payload,
                headers=self._headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("carrier_request_failed", path=path, error=str(exc))
            raise GatewayError(self.provider, str(exc)) from exc
        return response.json()

    def shipment_payload(self, order_snapshot: dict) -> dict:
        items = order_snapshot["items"]
        address = order_snapshot["shipping_address"]
        total_units = sum(item["quantity"] for item in items)

        return {
            "data": {
                "order_id": order_snapshot.get("order_number") or order_snapshot["order_id"],
                "order_date": datetime.now(UTC).date().isoformat(),
                "pickup_location": self.pickup_location,
                "comment": "Phone Wrap Order",
                "billing_customer_name": address["name"],
                "billing_address": address["street"],
                "billing_city": address["city"],
                "billing_pincode": address["postal_code"],
                "billing_state": address["state"],
                "billing_country": address.get("country") or "India",
                "billing_email": address["email"],
                "billing_phone": address["phone"],
                "shipping_is_billing": True,
                "order_items": [
                    {
                        "name": item["name"],
                        "sku": item.get("reference_id") or "SKU000",
                        "units": item["quantity"],
                        "selling_price": item["unit_price"],
                    }
                    for item in items
                ],
                "payment_method": "COD" if order_snapshot.get("payment_method") == "COD" else "Prepaid",
                "shipping_charges": order_snapshot.get("shipping_cost", 0),
                "total_discount": order_snapshot.get("discount_total", 0),
                "sub_total": order_snapshot.get("subtotal", 0),
                **PARCEL_DIMENSIONS_CM,
                "weight": round(total_units * UNIT_WEIGHT_KG, 3),
            }
        }

    def create_shipment(self, order_snapshot: dict) -> ShipmentResult:
        body = self._post("create_order.json", self.shipment_payload(order_snapshot))

        awb_code = body.get("awb_code")
        if not awb_code:
            raise GatewayError(self.provider, body.get("message") or "Carrier did not return an AWB code")

        logger.info("carrier_shipment_created", order_id=order_snapshot["order_id"], awb_code=awb_code)
        return ShipmentResult(
            awb_code=awb_code,
            shipment_id=body.get("shipment_id"),
            courier_name=body.get("courier_name"),
        )

    def cancel_shipment(self, awb_code: str) -> CancellationResult:
        try:
            body = self._post("cancel_order.json", {"awb_code": awb_code})
        except GatewayError as exc:
            return CancellationResult(cancelled=False, reason=exc.message)

        if str(body.get("status", "")).lower() in ("error", "failed"):
            return CancellationResult(cancelled=False, reason=body.get("message"))
        return CancellationResult(cancelled=True, reason=body.get("message"))

    def track_shipment(self, awb_code: str) -> TrackingResult:
        try:
            response = self.session.get(
                f"{self.base_url}/track_awb.json",
                params={"awb_code": awb_code},
                headers=self._headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("carrier_tracking_failed", awb_code=awb_code, error=str(exc))
            return TrackingResult(status="unknown", error=str(exc))

        body = response.json()
        return TrackingResult(
            status=body.get("current_status", "unknown"),
            location=body.get("current_location"),
            events=body.get("scan_details", []),
        )

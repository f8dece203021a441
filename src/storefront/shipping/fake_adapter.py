"""Fake carrier adapter — deterministic carrier for testing and development.

Generates mock AWB codes and tracking events. Success or failure can be
configured at runtime.
"""

from datetime import UTC, datetime
from uuid import uuid4

from storefront.errors import GatewayError
from storefront.shipping.port import (
    CancellationResult,
    ShipmentDispatcher,
    ShipmentResult,
    TrackingResult,
)


class FakeCarrier(ShipmentDispatcher):
    """Fake carrier that always succeeds by default."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Carrier unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable") -> None:
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_shipment(self, order_snapshot: dict) -> ShipmentResult:
        self.calls.append({"method": "create_shipment", "order_id": order_snapshot.get("order_id")})

        if not self.should_succeed:
            raise GatewayError("fake-carrier", self.failure_reason)

        return ShipmentResult(
            awb_code=f"FAKE{uuid4().hex[:10].upper()}",
            shipment_id=f"ship-{uuid4().hex[:8]}",
            courier_name="Fake Express",
        )

    def cancel_shipment(self, awb_code: str) -> CancellationResult:
        self.calls.append({"method": "cancel_shipment", "awb_code": awb_code})

        if not self.should_succeed:
            return CancellationResult(cancelled=False, reason=self.failure_reason)
        return CancellationResult(cancelled=True, reason="Shipment cancelled successfully")

    def track_shipment(self, awb_code: str) -> TrackingResult:
        self.calls.append({"method": "track_shipment", "awb_code": awb_code})

        if not self.should_succeed:
            return TrackingResult(status="unknown", error=self.failure_reason)

        return TrackingResult(
            status="in_transit",
            location="Sorting Hub, Mumbai",
            events=[
                {
                    "status": "picked_up",
                    "location": "Warehouse, Pune",
                    "description": "Package picked up by carrier",
                    "occurred_at": datetime.now(UTC).isoformat(),
                },
                {
                    "status": "in_transit",
                    "location": "Sorting Hub, Mumbai",
                    "description": "Package in transit",
                    "occurred_at": datetime.now(UTC).isoformat(),
                },
            ],
        )

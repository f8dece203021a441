"""Shipment dispatcher port (abstract interface).

Order code programs against this port; adapters are chosen from settings.
``create_shipment`` raises ``GatewayError`` when the carrier cannot be
reached or refuses the order. Cancellation and tracking report failures in
their results instead, since callers treat them as best-effort.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ShipmentResult:
    """References returned by the carrier for a new shipment."""

    awb_code: str
    shipment_id: str | None = None
    courier_name: str | None = None


@dataclass(frozen=True)
class CancellationResult:
    cancelled: bool
    reason: str | None = None


@dataclass(frozen=True)
class TrackingResult:
    status: str
    location: str | None = None
    events: list[dict] = field(default_factory=list)
    error: str | None = None


class ShipmentDispatcher(ABC):
    """Abstract shipping carrier interface."""

    @abstractmethod
    def create_shipment(self, order_snapshot: dict) -> ShipmentResult:
        """Book a shipment for an order.

        ``order_snapshot`` carries order_id, order_number, items (name,
        reference_id, quantity, unit_price), shipping_address, payment_method,
        subtotal, shipping_cost, discount_total and total_amount.
        """
        ...

    @abstractmethod
    def cancel_shipment(self, awb_code: str) -> CancellationResult:
        """Cancel a previously booked shipment."""
        ...

    @abstractmethod
    def track_shipment(self, awb_code: str) -> TrackingResult:
        """Return the current tracking status of a shipment."""
        ...

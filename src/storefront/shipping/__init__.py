"""Shipment dispatcher factory.

Provides get_carrier() / set_carrier() to swap implementations:
- FakeCarrier for development and testing
- IThinkCarrier for production
"""

from storefront.config import Settings, load_settings
from storefront.shipping.port import ShipmentDispatcher

_current_carrier: ShipmentDispatcher | None = None


def build_carrier(settings: Settings) -> ShipmentDispatcher:
    if settings.carrier_adapter == "fake":
        from storefront.shipping.fake_adapter import FakeCarrier

        return FakeCarrier()
    if settings.carrier_adapter == "ithink":
        from storefront.shipping.ithink_adapter import IThinkCarrier

        return IThinkCarrier(settings)
    raise ValueError(f"Unknown carrier adapter: {settings.carrier_adapter}")


def get_carrier(settings: Settings | None = None) -> ShipmentDispatcher:
    """Return the active carrier, building it from settings on first use."""
    global _current_carrier
    if _current_carrier is None:
        _current_carrier = build_carrier(settings or load_settings())
    return _current_carrier


def set_carrier(carrier: ShipmentDispatcher) -> None:
    """Override the active carrier (useful for tests)."""
    global _current_carrier
    _current_carrier = carrier


def reset_carrier() -> None:
    """Reset to the settings-driven default."""
    global _current_carrier
    _current_carrier = None

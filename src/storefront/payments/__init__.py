"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- RazorpayGateway for production
"""

from storefront.config import Settings, load_settings
from storefront.payments.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def build_gateway(settings: Settings) -> PaymentGateway:
    if settings.gateway_adapter == "fake":
        from storefront.payments.fake_adapter import FakeGateway

        return FakeGateway()
    if settings.gateway_adapter == "razorpay":
        from storefront.payments.razorpay_adapter import RazorpayGateway

        return RazorpayGateway(settings)
    raise ValueError(f"Unknown payment gateway: {settings.gateway_adapter}")


def get_gateway(settings: Settings | None = None) -> PaymentGateway:
    """Return the current payment gateway, building it from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway(settings or load_settings())
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

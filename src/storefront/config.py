"""Runtime settings for the storefront services.

Settings are read from the environment once, at the API layer, and passed
explicitly into the payment gateway, the carrier adapters and cart commands,
so nothing below the API layer reads process environment on its own.
"""

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Explicit configuration for gateway, carrier and pricing."""

    environment: str = "development"

    # Payment gateway
    gateway_adapter: str = "fake"
    gateway_base_url: str = "https://api.razorpay.com/v1"
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    gateway_webhook_secret: str = ""
    gateway_timeout: float = 30.0
    currency: str = "INR"

    # Shipping carrier
    carrier_adapter: str = "fake"
    ithink_api_url: str = ""
    ithink_api_key: str = ""
    ithink_secret_key: str = ""
    pickup_location: str = "Primary"
    carrier_timeout: float = 30.0

    # Pricing
    shipping_cost: float = 0.0
    custom_design_price: float = 499.0

    # Guest sessions
    session_ttl_days: int = 30

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    """Build a Settings object from environment variables."""
    return Settings(
        environment=(os.environ.get("PROTEAN_ENV") or os.environ.get("ENVIRONMENT") or "development").lower(),
        gateway_adapter=os.environ.get("PAYMENT_GATEWAY", "fake"),
        gateway_base_url=os.environ.get("RAZORPAY_API_URL", "https://api.razorpay.com/v1"),
        gateway_key_id=os.environ.get("RAZORPAY_KEY_ID", ""),
        gateway_key_secret=os.environ.get("RAZORPAY_KEY_SECRET", ""),
        gateway_webhook_secret=os.environ.get("RAZORPAY_WEBHOOK_SECRET", ""),
        gateway_timeout=_env_float("PAYMENT_GATEWAY_TIMEOUT", 30.0),
        currency=os.environ.get("CHECKOUT_CURRENCY", "INR"),
        carrier_adapter=os.environ.get("CARRIER_ADAPTER", "fake"),
        ithink_api_url=os.environ.get("ITHINK_API_URL", ""),
        ithink_api_key=os.environ.get("ITHINK_API_KEY", ""),
        ithink_secret_key=os.environ.get("ITHINK_SECRET_KEY", ""),
        pickup_location=os.environ.get("ITHINK_PICKUP_LOCATION", "Primary"),
        carrier_timeout=_env_float("CARRIER_TIMEOUT", 30.0),
        shipping_cost=_env_float("CHECKOUT_SHIPPING_COST", 0.0),
        custom_design_price=_env_float("CUSTOM_DESIGN_PRICE", 499.0),
        session_ttl_days=_env_int("GUEST_SESSION_TTL_DAYS", 30),
    )

"""Pydantic request/response schemas for the storefront API.

These are external contracts, kept separate from the Protean commands
and aggregates they are translated into.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    name: str
    email: str
    phone: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str = "India"


class CustomDesignSchema(BaseModel):
    design_image_url: str
    phone_model: str
    transform: dict | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddCartLineRequest(BaseModel):
    line_type: str = "item"
    reference_id: str | None = None
    quantity: int = Field(ge=1, default=1)
    selected_brand: str | None = None
    selected_model: str | None = None
    custom_design: CustomDesignSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "line_type": "collection",
                    "reference_id": "col-001",
                    "quantity": 3,
                }
            ]
        }
    }


class UpdateCartLineRequest(BaseModel):
    new_quantity: int = Field(ge=1)


class ApplyCouponRequest(BaseModel):
    coupon_code: str


# ---------------------------------------------------------------------------
# Coupon Request Schemas
# ---------------------------------------------------------------------------
class ValidateCouponRequest(BaseModel):
    coupon_code: str
    order_amount: float = Field(ge=0)
    applied_coupons: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class QuoteRequest(BaseModel):
    cart_key: str


class CreateIntentRequest(BaseModel):
    cart_key: str
    shipping_address: ShippingAddressSchema
    buyer_token: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart_key": "guest_5f1c",
                    "shipping_address": {
                        "name": "Asha Rao",
                        "email": "asha@example.com",
                        "phone": "+91 98450 12345",
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "postal_code": "560001",
                        "country": "India",
                    },
                    "buyer_token": "guest",
                }
            ]
        }
    }


class VerifyPaymentRequest(BaseModel):
    gateway_order_id: str
    gateway_payment_id: str | None = None
    gateway_signature: str | None = None
    buyer_token: str | None = None


class PlaceCodOrderRequest(BaseModel):
    cart_key: str
    shipping_address: ShippingAddressSchema
    buyer_token: str | None = None


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Payment declined"
    reachable: bool = True


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    note: str | None = None
    updated_by: str = "Admin"


class CancelOrderRequest(BaseModel):
    reason: str
    cancelled_by: str = "Customer"


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CartLineIdResponse(BaseModel):
    line_id: str


class AppliedCouponResponse(BaseModel):
    code: str
    discount_percentage: float
    discount_amount: int
    applied_at: str | None = None


class QuoteResponse(BaseModel):
    subtotal: float
    shipping_cost: float
    discount_total: float
    total_amount: float
    currency: str
    applied_coupons: list[AppliedCouponResponse] = Field(default_factory=list)


class IntentResponse(BaseModel):
    gateway_order_id: str
    amount: float
    amount_minor: int
    currency: str
    key_id: str | None = None


class CheckoutResponse(BaseModel):
    success: bool
    message: str
    order_id: str | None = None
    order_number: str | None = None
    account_id: str | None = None
    is_new_account: bool = False
    session_token: str | None = None
    warnings: list[str] = Field(default_factory=list)


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    reachable: bool


class TrackingResponse(BaseModel):
    status: str | None = None
    location: str | None = None
    events: list[dict] = Field(default_factory=list)
    error: str | None = None


class LeaderboardEntry(BaseModel):
    rank: int
    account_id: str
    username: str
    name: str | None = None
    score: int
    cards: int

"""FastAPI routes for the storefront — carts, coupons, checkout and orders."""

import json

from fastapi import APIRouter, Header, HTTPException, Request
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from starlette.concurrency import run_in_threadpool

from storefront.account.leaderboard import leaderboard
from storefront.api.schemas import (
    AddCartLineRequest,
    AppliedCouponResponse,
    ApplyCouponRequest,
    CancelOrderRequest,
    CartLineIdResponse,
    CheckoutResponse,
    ConfigureGatewayRequest,
    CreateIntentRequest,
    GatewayConfigResponse,
    IntentResponse,
    LeaderboardEntry,
    PlaceCodOrderRequest,
    QuoteRequest,
    QuoteResponse,
    StatusResponse,
    TrackingResponse,
    UpdateCartLineRequest,
    UpdateOrderStatusRequest,
    ValidateCouponRequest,
    VerifyPaymentRequest,
)
from storefront.cart.cart import Cart
from storefront.cart.management import (
    AddCartLine,
    ApplyCartCoupon,
    ClearCart,
    RemoveCartCoupon,
    RemoveCartLine,
    UpdateCartLineQuantity,
)
from storefront.checkout.bridge import PaymentGatewayBridge
from storefront.config import load_settings
from storefront.coupon.engine import CouponEngine
from storefront.order.ledger import OrderLedger
from storefront.order.management import CancelOrder, CreateShipment, DeleteOrder, UpdateOrderStatus
from storefront.order.order import Order
from storefront.payments import get_gateway
from storefront.payments.fake_adapter import FakeGateway
from storefront.shipping import get_carrier


def _bridge() -> PaymentGatewayBridge:
    settings = load_settings()
    return PaymentGatewayBridge(
        settings,
        get_gateway(settings),
        ledger=OrderLedger(carrier=get_carrier(settings)),
    )


def _cart_view(cart: Cart) -> dict:
    return {
        "cart_key": cart.cart_key,
        "lines": [{"line_id": str(line.id), **snapshot} for line, snapshot in zip(cart.lines, cart.line_snapshots())],
        "applied_coupons": [coupon.to_dict() for coupon in cart.coupons()],
        "subtotal": cart.subtotal,
    }


def order_view(order: Order) -> dict:
    address = order.shipping_address
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "buyer_id": str(order.buyer_id),
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "gateway_order_id": order.gateway_order_id,
        "gateway_payment_id": order.gateway_payment_id,
        "lines": [
            {
                "item_type": line.item_type,
                "reference_id": line.reference_id,
                "source_collection_id": line.source_collection_id,
                "collection_name": line.collection_name,
                "product_name": line.product_name,
                "image": line.image,
                "level": line.level,
                "unit_price": line.unit_price,
                "quantity": line.quantity,
                "selected_brand": line.selected_brand,
                "phone_model": line.phone_model,
            }
            for line in order.lines
        ],
        "pricing": {
            "subtotal": order.pricing.subtotal,
            "shipping_cost": order.pricing.shipping_cost,
            "discount_total": order.pricing.discount_total,
            "total_amount": order.pricing.total_amount,
            "currency": order.pricing.currency,
        },
        "applied_coupons": order.coupons(),
        "shipping_address": {
            "name": address.name,
            "email": address.email,
            "phone": address.phone,
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "postal_code": address.postal_code,
            "country": address.country,
        },
        "status_history": [
            {
                "status": entry.status,
                "note": entry.note,
                "updated_by": entry.updated_by,
                "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
            }
            for entry in order.history()
        ],
        "awb_code": order.awb_code,
        "courier_name": order.courier_name,
        "cancellation_reason": order.cancellation_reason,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{cart_key}")
async def get_cart(cart_key: str) -> dict:
    cart = current_domain.repository_for(Cart).for_key(cart_key)
    return _cart_view(cart)


@cart_router.post("/{cart_key}/lines", status_code=201, response_model=CartLineIdResponse)
async def add_cart_line(cart_key: str, body: AddCartLineRequest) -> CartLineIdResponse:
    command = AddCartLine(
        cart_key=cart_key,
        line_type=body.line_type,
        reference_id=body.reference_id,
        quantity=body.quantity,
        selected_brand=body.selected_brand,
        selected_model=body.selected_model,
        custom_design=json.dumps(body.custom_design.model_dump()) if body.custom_design else None,
        custom_design_price=load_settings().custom_design_price,
    )
    line_id = current_domain.process(command, asynchronous=False)
    return CartLineIdResponse(line_id=line_id)


@cart_router.put("/{cart_key}/lines/{line_id}", response_model=StatusResponse)
async def update_cart_line(cart_key: str, line_id: str, body: UpdateCartLineRequest) -> StatusResponse:
    command = UpdateCartLineQuantity(cart_key=cart_key, line_id=line_id, new_quantity=body.new_quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_key}/lines/{line_id}", response_model=StatusResponse)
async def remove_cart_line(cart_key: str, line_id: str) -> StatusResponse:
    current_domain.process(RemoveCartLine(cart_key=cart_key, line_id=line_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_key}/coupons", response_model=AppliedCouponResponse)
async def apply_cart_coupon(cart_key: str, body: ApplyCouponRequest) -> AppliedCouponResponse:
    command = ApplyCartCoupon(cart_key=cart_key, coupon_code=body.coupon_code)
    applied = current_domain.process(command, asynchronous=False)
    return AppliedCouponResponse(**applied)


@cart_router.delete("/{cart_key}/coupons/{coupon_code}", response_model=StatusResponse)
async def remove_cart_coupon(cart_key: str, coupon_code: str) -> StatusResponse:
    current_domain.process(RemoveCartCoupon(cart_key=cart_key, coupon_code=coupon_code), asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_key}", response_model=StatusResponse)
async def clear_cart(cart_key: str) -> StatusResponse:
    current_domain.process(ClearCart(cart_key=cart_key), asynchronous=False)
    return StatusResponse(status="cleared")


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("/validate", response_model=AppliedCouponResponse)
async def validate_coupon(body: ValidateCouponRequest) -> AppliedCouponResponse:
    """Check a code against an order amount without consuming it."""
    applied = CouponEngine().validate(body.coupon_code, body.order_amount, body.applied_coupons)
    return AppliedCouponResponse(**applied.to_dict())


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/quote", response_model=QuoteResponse)
def quote(body: QuoteRequest) -> QuoteResponse:
    return QuoteResponse(**_bridge().quote(body.cart_key).to_dict())


@checkout_router.post("/intent", status_code=201, response_model=IntentResponse)
def create_intent(body: CreateIntentRequest) -> IntentResponse:
    """Open a gateway order for the cart total. No order exists until verification."""
    result = _bridge().create_intent(body.cart_key, body.shipping_address.model_dump(), body.buyer_token)
    return IntentResponse(**result.to_dict())


@checkout_router.post("/verify", response_model=CheckoutResponse)
def verify_payment(body: VerifyPaymentRequest) -> CheckoutResponse:
    result = _bridge().verify(
        body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
        gateway_signature=body.gateway_signature,
        buyer_token=body.buyer_token,
    )
    return CheckoutResponse(**result.to_dict())


@checkout_router.post("/cod", status_code=201, response_model=CheckoutResponse)
def place_cod_order(body: PlaceCodOrderRequest) -> CheckoutResponse:
    result = _bridge().place_cod(body.cart_key, body.shipping_address.model_dump(), body.buyer_token)
    return CheckoutResponse(**result.to_dict())


@checkout_router.post("/webhook", response_model=StatusResponse)
async def gateway_webhook(request: Request, x_razorpay_signature: str = Header(default="")) -> StatusResponse:
    """Gateway callback; runs the same verification as the client would."""
    payload = (await request.body()).decode()
    bridge = _bridge()
    if not bridge.gateway.verify_webhook_signature(payload, x_razorpay_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValidationError({"payload": [f"Malformed webhook body: {exc.msg}"]}) from exc
    if not isinstance(event, dict):
        raise ValidationError({"payload": ["Webhook body must be a JSON object"]})

    # Verification calls the gateway over blocking HTTP
    result = await run_in_threadpool(bridge.handle_webhook, event)
    if result is None:
        return StatusResponse(status="ignored")
    return StatusResponse(status="processed" if result.success else "not_completed")


@checkout_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if load_settings().is_production:
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        reachable=body.reachable,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        reachable=gateway.reachable,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("")
async def list_orders(buyer_id: str) -> list[dict]:
    return [order_view(order) for order in current_domain.repository_for(Order).for_buyer(buyer_id)]


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    return order_view(current_domain.repository_for(Order).get(order_id))


@order_router.put("/{order_id}/status", response_model=StatusResponse)
def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(order_id=order_id, status=body.status, note=body.note, updated_by=body.updated_by)
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=status)


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason, cancelled_by=body.cancelled_by)
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=status)


@order_router.post("/{order_id}/shipment", response_model=StatusResponse)
def create_shipment(order_id: str) -> StatusResponse:
    awb_code = current_domain.process(CreateShipment(order_id=order_id), asynchronous=False)
    return StatusResponse(status=f"shipped:{awb_code}")


@order_router.get("/{order_id}/tracking", response_model=TrackingResponse)
def track_order(order_id: str) -> TrackingResponse:
    result = OrderLedger(carrier=get_carrier()).track(order_id)
    return TrackingResponse(status=result.status, location=result.location, events=result.events, error=result.error)


@order_router.delete("/{order_id}", response_model=StatusResponse)
async def delete_order(order_id: str) -> StatusResponse:
    current_domain.process(DeleteOrder(order_id=order_id), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Leaderboard Router
# ---------------------------------------------------------------------------
leaderboard_router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@leaderboard_router.get("", response_model=list[LeaderboardEntry])
async def get_leaderboard(limit: int = 10) -> list[LeaderboardEntry]:
    return [LeaderboardEntry(**entry) for entry in leaderboard(limit)]

"""Payment Gateway Bridge — the checkout pipeline from quote to fulfilled order.

Online checkout is a two-step handshake. ``create_intent`` prices the
stored cart and opens a gateway order without creating any Order.
``verify`` then asks the gateway whether that order was paid and, only
then, commits the order:

    identity → collection expansion → coupon redemption → ledger → unlock

Verification is idempotent per gateway order id, so a client retry racing
the gateway webhook returns the order committed first. Pay-on-delivery
orders skip the gateway and are committed straight away with payment
pending.
"""

import json
from dataclasses import asdict, dataclass, field
from uuid import uuid4

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.account.account import BuyerAccount
from storefront.account.resolver import CheckoutContact, GuestIdentityResolver, buyer_ref_from
from storefront.cart.cart import Cart
from storefront.checkout.expansion import CartLineExpander
from storefront.checkout.intent import CheckoutStatus, PaymentIntent
from storefront.checkout.pricing import Quote, quote_cart
from storefront.config import Settings
from storefront.coupon.engine import CouponEngine
from storefront.errors import CouponRejected
from storefront.fulfillment.unlock import FulfillmentUnlockService
from storefront.order.ledger import OrderLedger, PaymentMeta
from storefront.order.order import Order, PaymentMethod, PaymentStatus, ShippingAddress
from storefront.payments.port import IntentStatus, PaymentGateway

logger = structlog.get_logger(__name__)

PAYMENT_NOT_COMPLETED = "Payment not completed"
_ADDRESS_FIELDS = ("name", "email", "phone", "street", "city", "state", "postal_code", "country")
_WEBHOOK_EVENTS = {"payment.captured", "order.paid"}


@dataclass(frozen=True)
class IntentResult:
    gateway_order_id: str
    amount: float
    amount_minor: int
    currency: str
    key_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CheckoutResult:
    success: bool
    message: str
    order_id: str | None = None
    order_number: str | None = None
    account_id: str | None = None
    is_new_account: bool = False
    session_token: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def validated_address(address: dict) -> dict:
    """Keep known address fields and validate them as a ``ShippingAddress``."""
    cleaned = {key: address[key] for key in _ADDRESS_FIELDS if address.get(key) is not None}
    ShippingAddress(**cleaned)
    return cleaned


def contact_from(address: dict) -> CheckoutContact:
    return CheckoutContact(email=address["email"], phone=address.get("phone"), name=address.get("name"))


class PaymentGatewayBridge:
    def __init__(
        self,
        settings: Settings,
        gateway: PaymentGateway,
        ledger: OrderLedger | None = None,
        expander: CartLineExpander | None = None,
        coupon_engine: CouponEngine | None = None,
        unlock_service: FulfillmentUnlockService | None = None,
    ):
        self.settings = settings
        self.gateway = gateway
        self.ledger = ledger or OrderLedger()
        self.expander = expander or CartLineExpander()
        self.coupon_engine = coupon_engine or CouponEngine()
        self.unlock_service = unlock_service or FulfillmentUnlockService()
        self.resolver = GuestIdentityResolver(settings)

    # -------------------------------------------------------------------
    # Quote and intent
    # -------------------------------------------------------------------
    def _cart(self, cart_key) -> Cart:
        cart = current_domain.repository_for(Cart).find_by_key(cart_key)
        if cart is None:
            raise ObjectNotFoundError(f"Cart {cart_key} not found")
        return cart

    def quote(self, cart_key) -> Quote:
        return quote_cart(self._cart(cart_key), self.settings)

    def create_intent(self, cart_key, shipping_address: dict, buyer_token=None) -> IntentResult:
        cart = self._cart(cart_key)
        quote = quote_cart(cart, self.settings)
        address = validated_address(shipping_address)
        contact_from(address)

        gateway_intent = self.gateway.create_intent(
            amount_minor=quote.amount_minor,
            currency=quote.currency,
            receipt=f"rcpt_{uuid4().hex[:16]}",
        )
        intent = PaymentIntent.open(
            gateway_order_id=gateway_intent.intent_id,
            cart_key=cart_key,
            buyer_token=buyer_token,
            quote=quote,
            lines=cart.line_snapshots(),
            shipping_address=address,
        )
        current_domain.repository_for(PaymentIntent).add(intent)

        logger.info(
            "payment_intent_created",
            gateway_order_id=intent.gateway_order_id,
            cart_key=cart_key,
            amount_minor=quote.amount_minor,
        )
        return IntentResult(
            gateway_order_id=intent.gateway_order_id,
            amount=quote.total_amount,
            amount_minor=quote.amount_minor,
            currency=quote.currency,
            key_id=self.settings.gateway_key_id or None,
        )

    # -------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------
    def verify(self, gateway_order_id, gateway_payment_id=None, gateway_signature=None, buyer_token=None):
        intents = current_domain.repository_for(PaymentIntent)
        intent = intents.find_by_gateway_order(gateway_order_id)
        if intent is None:
            raise ObjectNotFoundError(f"No checkout found for gateway order {gateway_order_id}")

        if intent.is_confirmed:
            logger.info("payment_already_verified", gateway_order_id=gateway_order_id, order_id=intent.order_id)
            return self._confirmed_result(intent.order_id)

        if CheckoutStatus(intent.status) == CheckoutStatus.FAILED:
            return CheckoutResult(success=False, message=PAYMENT_NOT_COMPLETED)

        if gateway_signature is not None and not self.gateway.verify_payment_signature(
            gateway_order_id, gateway_payment_id, gateway_signature
        ):
            logger.warning("payment_signature_mismatch", gateway_order_id=gateway_order_id)

        status = self.gateway.fetch_intent_status(gateway_order_id)
        if status != IntentStatus.SETTLED:
            if status == IntentStatus.FAILED:
                intent.mark_failed("Gateway reported the payment as failed")
                intents.add(intent)
            logger.info("payment_not_settled", gateway_order_id=gateway_order_id, status=status.value)
            return CheckoutResult(success=False, message=PAYMENT_NOT_COMPLETED)

        if intent.is_awaiting_payment:
            intent.mark_paid(gateway_payment_id)
            try:
                intents.add(intent)
            except ExpectedVersionError:
                intent = intents.find_by_gateway_order(gateway_order_id)
                if intent.is_confirmed:
                    return self._confirmed_result(intent.order_id)

        existing = current_domain.repository_for(Order).find_by_gateway_order(gateway_order_id)
        if existing is not None:
            # Committed by an earlier attempt that stopped before confirming the intent
            order, buyer, warnings = existing, None, []
        else:
            address = intent.address()
            buyer, lines, warnings = self._prepare(
                buyer_token or intent.buyer_token,
                address,
                intent.line_snapshots(),
                intent.coupon_snapshots(),
                order_ref=gateway_order_id,
            )
            try:
                order = self.ledger.commit(
                    buyer_id=buyer.account_id,
                    lines=lines,
                    pricing=intent.pricing(),
                    shipping_address=address,
                    payment_meta=PaymentMeta(
                        method=PaymentMethod.ONLINE,
                        status=PaymentStatus.PAID,
                        gateway_order_id=gateway_order_id,
                        gateway_payment_id=gateway_payment_id,
                    ),
                    applied_coupons=intent.coupon_snapshots(),
                )
            except ValidationError as exc:
                if "gateway_order_id" not in exc.messages:
                    raise
                return self._settled_elsewhere(gateway_order_id)

        intent.confirm(order.id)
        try:
            intents.add(intent)
        except ExpectedVersionError:
            return self._settled_elsewhere(gateway_order_id)

        self.unlock_service.apply(order.buyer_id, order, intent.cart_key)

        return CheckoutResult(
            success=True,
            message="Payment verified and order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            account_id=str(order.buyer_id),
            is_new_account=buyer.is_new_account if buyer else False,
            session_token=buyer.session_token if buyer else None,
            warnings=warnings,
        )

    def handle_webhook(self, event: dict) -> CheckoutResult | None:
        """Run verification for a gateway webhook; unrelated events are ignored."""
        if event.get("event") not in _WEBHOOK_EVENTS:
            return None

        payment = event.get("payload", {}).get("payment", {}).get("entity", {})
        gateway_order_id = payment.get("order_id") or event.get("payload", {}).get("order", {}).get("entity", {}).get("id")
        if not gateway_order_id:
            logger.warning("webhook_without_order", event=event.get("event"))
            return None

        if current_domain.repository_for(PaymentIntent).find_by_gateway_order(gateway_order_id) is None:
            logger.warning("webhook_for_unknown_order", gateway_order_id=gateway_order_id)
            return None

        return self.verify(gateway_order_id, gateway_payment_id=payment.get("id"))

    # -------------------------------------------------------------------
    # Pay on delivery
    # -------------------------------------------------------------------
    def place_cod(self, cart_key, shipping_address: dict, buyer_token=None) -> CheckoutResult:
        cart = self._cart(cart_key)
        quote = quote_cart(cart, self.settings)
        address = validated_address(shipping_address)
        coupons = [c.to_dict() for c in quote.applied_coupons]

        buyer, lines, warnings = self._prepare(
            buyer_token,
            address,
            cart.line_snapshots(),
            coupons,
            order_ref=f"cod_{uuid4().hex}",
        )
        order = self.ledger.commit(
            buyer_id=buyer.account_id,
            lines=lines,
            pricing=quote.pricing(),
            shipping_address=address,
            payment_meta=PaymentMeta(method=PaymentMethod.COD, status=PaymentStatus.PENDING),
            applied_coupons=coupons,
        )
        self.unlock_service.clear_cart(cart_key)

        return CheckoutResult(
            success=True,
            message="Order placed with cash on delivery",
            order_id=str(order.id),
            order_number=order.order_number,
            account_id=buyer.account_id,
            is_new_account=buyer.is_new_account,
            session_token=buyer.session_token,
            warnings=warnings,
        )

    # -------------------------------------------------------------------
    # Shared steps
    # -------------------------------------------------------------------
    def _prepare(self, buyer_token, address, line_snapshots, coupon_snapshots, order_ref):
        """Resolve the buyer, expand lines and redeem coupons, in that order."""
        contact = contact_from(address)
        buyer = self.resolver.resolve(buyer_ref_from(buyer_token, contact), contact)

        account = current_domain.repository_for(BuyerAccount).get(buyer.account_id)
        expansion = self.expander.expand(line_snapshots, account.unlocked_item_ids())

        warnings = list(expansion.warnings)
        for coupon in coupon_snapshots:
            try:
                self.coupon_engine.redeem(coupon["code"], order_ref)
            except (CouponRejected, ObjectNotFoundError) as exc:
                # The discount was already priced in; the order keeps it
                logger.warning(
                    "coupon_redemption_refused",
                    coupon_code=coupon["code"],
                    order_ref=order_ref,
                    error=json.dumps(getattr(exc, "messages", str(exc)), default=str),
                )
                warnings.append(f"Coupon {coupon['code']} could not be redeemed")

        return buyer, expansion.lines, warnings

    def _settled_elsewhere(self, gateway_order_id) -> CheckoutResult:
        """Result for a verify that lost the race to a concurrent one for the same gateway order."""
        order = current_domain.repository_for(Order).find_by_gateway_order(gateway_order_id)
        logger.info("payment_verified_concurrently", gateway_order_id=gateway_order_id, order_id=str(order.id))
        return self._confirmed_result(order.id)

    def _confirmed_result(self, order_id) -> CheckoutResult:
        order = self.ledger.get(order_id)
        return CheckoutResult(
            success=True,
            message="Payment already verified",
            order_id=str(order.id),
            order_number=order.order_number,
            account_id=str(order.buyer_id),
        )

"""Cart management — commands and handler.

Line prices always come from the catalogue, or from the price the caller
configured for custom designs; clients only choose what to buy and how many.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.lines import CartLineType, normalize_custom_design
from storefront.catalogue.collection import Collection
from storefront.catalogue.product import Product
from storefront.config import Settings
from storefront.coupon.engine import CouponEngine
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class AddCartLine:
    """Add a product, collection, suggested product or custom design to a cart."""

    cart_key = String(required=True, max_length=255)
    line_type = String(required=True, choices=CartLineType)
    reference_id = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    selected_brand = String(max_length=100)
    selected_model = String(max_length=100)
    custom_design = Text()  # JSON payload for custom design lines
    custom_design_price = Float(min_value=0.0)  # Configured price; unset means the default


@storefront.command(part_of="Cart")
class UpdateCartLineQuantity:
    cart_key = String(required=True, max_length=255)
    line_id = String(required=True)
    new_quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class RemoveCartLine:
    cart_key = String(required=True, max_length=255)
    line_id = String(required=True)


@storefront.command(part_of="Cart")
class ApplyCartCoupon:
    """Validate a coupon against the cart subtotal and freeze its discount."""

    cart_key = String(required=True, max_length=255)
    coupon_code = String(required=True, max_length=50)


@storefront.command(part_of="Cart")
class RemoveCartCoupon:
    cart_key = String(required=True, max_length=255)
    coupon_code = String(required=True, max_length=50)


@storefront.command(part_of="Cart")
class ClearCart:
    cart_key = String(required=True, max_length=255)


def _custom_design_price(command) -> float:
    if command.custom_design_price is None:
        return Settings().custom_design_price
    return command.custom_design_price


def _priced_line(command) -> dict:
    """Resolve name, image and unit price for a new cart line."""
    line_type = CartLineType(command.line_type)

    if line_type in (CartLineType.ITEM, CartLineType.SUGGESTED_ITEM):
        if not command.reference_id:
            raise ValidationError({"reference_id": ["A product id is required"]})
        product = current_domain.repository_for(Product).get(command.reference_id)
        if not product.has_stock_for(command.quantity):
            raise ValidationError({"quantity": [f"Only {product.stock} units of {product.name} are in stock"]})
        return {"name": product.name, "image": product.image, "unit_price": product.price}

    if line_type == CartLineType.COLLECTION:
        if not command.reference_id:
            raise ValidationError({"reference_id": ["A collection id is required"]})
        collection = current_domain.repository_for(Collection).get(command.reference_id)
        return {"name": collection.name, "image": collection.image, "unit_price": collection.base_price}

    if line_type == CartLineType.CUSTOM_DESIGN:
        payload = json.loads(command.custom_design) if command.custom_design else None
        if payload is None:
            raise ValidationError({"custom_design": ["A design payload is required"]})
        return {
            "name": f"Custom design ({payload.get('phone_model')})",
            "image": payload.get("design_image_url"),
            "unit_price": _custom_design_price(command),
            "custom_design": normalize_custom_design(payload),
        }

    raise ValidationError({"line_type": [f"Unsupported line type {command.line_type}"]})


@storefront.command_handler(part_of=Cart)
class CartCommandHandler:
    @handle(AddCartLine)
    def add_line(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_key(command.cart_key)
        priced = _priced_line(command)

        line = cart.add_line(
            CartLineType(command.line_type),
            quantity=command.quantity,
            unit_price=priced["unit_price"],
            reference_id=command.reference_id,
            name=priced["name"],
            image=priced["image"],
            selected_brand=command.selected_brand,
            selected_model=command.selected_model,
            custom_design=priced.get("custom_design"),
        )
        repo.add(cart)
        return str(line.id)

    @handle(UpdateCartLineQuantity)
    def update_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_key(command.cart_key)
        cart.update_line_quantity(command.line_id, command.new_quantity)
        repo.add(cart)

    @handle(RemoveCartLine)
    def remove_line(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_key(command.cart_key)
        cart.remove_line(command.line_id)
        repo.add(cart)

    @handle(ApplyCartCoupon)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_key(command.cart_key)
        if cart.is_empty:
            raise ValidationError({"cart": ["Add items to the cart before applying a coupon"]})

        applied = CouponEngine().validate(command.coupon_code, cart.subtotal, cart.coupons())
        cart.apply_coupon(applied)
        repo.add(cart)
        return applied.to_dict()

    @handle(RemoveCartCoupon)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_key(command.cart_key)
        cart.remove_coupon(command.coupon_code)
        repo.add(cart)

    @handle(ClearCart)
    def clear(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_key(command.cart_key)
        if cart is None:
            return
        cart.clear()
        repo.add(cart)

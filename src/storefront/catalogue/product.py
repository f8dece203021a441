"""Catalogue Product aggregate.

Products are maintained by the catalogue back office; checkout only reads
them to price cart lines, pick collection members and compute scores.
"""

from enum import Enum

from protean.fields import Float, Integer, String

from storefront.domain import storefront


class ProductKind(Enum):
    GAMING = "gaming"
    STANDARD = "standard"


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    kind = String(choices=ProductKind, default=ProductKind.STANDARD.value)
    level = Integer(min_value=0)  # Gaming cards only; contributes to buyer score
    price = Float(required=True, min_value=0.0)
    image = String(max_length=1024)
    stock = Integer(min_value=0)  # None when stock is not tracked

    @classmethod
    def gaming_card(cls, name, level, price, image=None, stock=None):
        return cls(
            name=name,
            kind=ProductKind.GAMING.value,
            level=level,
            price=price,
            image=image,
            stock=stock,
        )

    @property
    def is_eligible_card(self) -> bool:
        """A product can be granted from a collection only if it is a levelled gaming card."""
        return self.kind == ProductKind.GAMING.value and self.level is not None

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock is None or self.stock >= quantity


@storefront.repository(part_of=Product)
class ProductRepository:
    def find_many(self, product_ids) -> list[Product]:
        """Load products in the given order, skipping ids that no longer exist."""
        products = []
        for product_id in product_ids:
            results = self._dao.query.filter(id=product_id).all().items
            if results:
                products.append(results[0])
        return products

    def levels_for(self, product_ids) -> dict[str, int]:
        return {
            str(product.id): product.level
            for product in self.find_many(product_ids)
            if product.level is not None
        }

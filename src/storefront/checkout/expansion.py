"""Collection expansion — turning cart lines into concrete order lines.

A gaming collection line ("N cards from collection C") becomes N order
lines, one per granted card. A complete-set purchase (``COMPLETE_SET_SIZE``
or more) always grants the first eligible members in collection order;
smaller purchases draw cards the buyer does not own yet, at random.
"""

import random
from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from storefront.cart.lines import CartLineType
from storefront.catalogue.collection import COMPLETE_SET_SIZE, Collection
from storefront.catalogue.product import Product
from storefront.errors import NoEligibleMembers

logger = structlog.get_logger(__name__)


def select_unique(pool, owned, n, rng=None) -> list:
    """Pick ``n`` members of ``pool``, preferring ones not in ``owned``.

    Draws ``min(n, available)`` distinct members from the unowned part of
    the pool. When every member is already owned, draws ``n`` members from
    the whole pool with replacement.
    """
    rng = rng or random.Random()
    available = [member for member in pool if member not in owned]
    if available:
        return rng.sample(available, min(n, len(available)))
    if not pool:
        return []
    return rng.choices(pool, k=n)


def split_price(total: float, parts: int) -> list[float]:
    """Split ``total`` into ``parts`` near-equal shares that sum back to ``total``."""
    share = round(total / parts, 2)
    return [share] * (parts - 1) + [round(total - share * (parts - 1), 2)]


@dataclass
class ExpansionResult:
    lines: list[dict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class CollectionExpansionResolver:
    """Picks concrete products for a gaming collection purchase."""

    def __init__(self, rng=None):
        self.rng = rng or random.Random()

    def eligible_members(self, collection: Collection) -> list[Product]:
        products = current_domain.repository_for(Product).find_many(collection.members)
        return [product for product in products if product.is_eligible_card]

    def expand(self, collection_id, quantity, price, owned_ids) -> list[dict]:
        """Return order-line dicts for ``quantity`` cards worth ``price`` in total.

        Raises ``ObjectNotFoundError`` for an unknown collection and
        ``NoEligibleMembers`` when it has no levelled gaming products.
        """
        collection = current_domain.repository_for(Collection).get(collection_id)
        eligible = self.eligible_members(collection)
        if not eligible:
            raise NoEligibleMembers(str(collection_id))

        if quantity >= COMPLETE_SET_SIZE:
            selected = eligible[:COMPLETE_SET_SIZE]
        else:
            by_id = {str(product.id): product for product in eligible}
            picked_ids = select_unique(list(by_id), set(owned_ids), quantity, self.rng)
            selected = [by_id[product_id] for product_id in picked_ids]

        prices = split_price(price, len(selected))
        logger.debug(
            "collection_expanded",
            collection_id=str(collection_id),
            quantity=quantity,
            granted=[str(p.id) for p in selected],
        )
        return [
            {
                "item_type": CartLineType.ITEM.value,
                "reference_id": str(product.id),
                "source_collection_id": str(collection.id),
                "collection_name": collection.name,
                "collection_image": collection.image,
                "product_name": product.name,
                "image": product.image,
                "level": product.level,
                "unit_price": unit_price,
                "quantity": 1,
            }
            for product, unit_price in zip(selected, prices, strict=True)
        ]


class CartLineExpander:
    """Maps every kind of cart line onto order lines.

    Each ``CartLineType`` has exactly one handler; a kind without one is a
    programming error and raises immediately.
    """

    def __init__(self, resolver: CollectionExpansionResolver | None = None):
        self.resolver = resolver or CollectionExpansionResolver()
        self._handlers = {
            CartLineType.ITEM: self._product_line,
            CartLineType.SUGGESTED_ITEM: self._product_line,
            CartLineType.COLLECTION: self._collection_line,
            CartLineType.CUSTOM_DESIGN: self._custom_design_line,
        }
        missing = set(CartLineType) - set(self._handlers)
        if missing:
            raise NotImplementedError(f"No expansion handler for {sorted(m.value for m in missing)}")

    def expand(self, line_snapshots, owned_ids) -> ExpansionResult:
        result = ExpansionResult()
        for snapshot in line_snapshots:
            handler = self._handlers[CartLineType(snapshot["line_type"])]
            handler(snapshot, set(owned_ids), result)
        return result

    def _product_line(self, snapshot, _owned, result):
        result.lines.append(
            {
                "item_type": snapshot["line_type"],
                "reference_id": snapshot.get("reference_id"),
                "product_name": snapshot.get("name") or "Product",
                "image": snapshot.get("image"),
                "unit_price": snapshot["unit_price"],
                "quantity": snapshot["quantity"],
                "selected_brand": snapshot.get("selected_brand"),
                "phone_model": snapshot.get("selected_model"),
            }
        )

    def _custom_design_line(self, snapshot, _owned, result):
        result.lines.append(
            {
                "item_type": snapshot["line_type"],
                "product_name": snapshot.get("name") or "Custom design",
                "image": snapshot.get("image"),
                "unit_price": snapshot["unit_price"],
                "quantity": snapshot["quantity"],
                "selected_brand": snapshot.get("selected_brand"),
                "phone_model": snapshot.get("selected_model"),
                "custom_design": snapshot.get("custom_design"),
            }
        )

    def _collection_line(self, snapshot, owned, result):
        collection_id = snapshot["reference_id"]
        total = snapshot["unit_price"] * snapshot["quantity"]
        collection = current_domain.repository_for(Collection).get(collection_id)

        if collection.is_gaming:
            try:
                result.lines.extend(self.resolver.expand(collection_id, snapshot["quantity"], total, owned))
                return
            except NoEligibleMembers:
                message = f"Collection {collection.name} could not be expanded into cards"
                logger.warning("collection_expansion_degraded", collection_id=str(collection_id))
                result.warnings.append(message)

        result.lines.append(
            {
                "item_type": CartLineType.COLLECTION.value,
                "reference_id": str(collection_id),
                "collection_name": collection.name,
                "collection_image": collection.image,
                "product_name": collection.name,
                "image": collection.image,
                "unit_price": snapshot["unit_price"],
                "quantity": snapshot["quantity"],
                "selected_brand": snapshot.get("selected_brand"),
                "phone_model": snapshot.get("selected_model"),
            }
        )

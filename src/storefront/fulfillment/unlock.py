"""Fulfillment Unlock Service — post-payment side effects of an order.

Grants the buyer everything the order paid for, recomputes their score and
empties their cart. The order is already committed when this runs, so a
failure to unlock one collection is logged for reconciliation and never
undoes the order or the other collections.
"""

from dataclasses import dataclass, field

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.account.account import BuyerAccount
from storefront.cart.cart import Cart
from storefront.cart.lines import CartLineType
from storefront.catalogue.collection import COMPLETE_SET_SIZE
from storefront.catalogue.product import Product
from storefront.order.order import Order

logger = structlog.get_logger(__name__)

_UNLOCKABLE_TYPES = {CartLineType.ITEM.value, CartLineType.SUGGESTED_ITEM.value}


@dataclass
class UnlockReport:
    unlocked_items: list[str] = field(default_factory=list)
    granted_cards: dict[str, list[str]] = field(default_factory=dict)
    unlocked_collections: list[str] = field(default_factory=list)
    failed_collections: list[str] = field(default_factory=list)
    score: int = 0
    cart_cleared: bool = False


def _card_groups(order: Order) -> dict[str, list]:
    groups = {}
    for line in order.lines:
        if line.source_collection_id:
            groups.setdefault(line.source_collection_id, []).append(line)
    return groups


class FulfillmentUnlockService:
    def apply(self, account_id, order: Order, cart_key: str | None = None) -> UnlockReport:
        repo = current_domain.repository_for(BuyerAccount)
        account = repo.get(account_id)
        report = UnlockReport()

        # Products, including every card expanded from a collection
        product_ids = [
            line.reference_id for line in order.lines if line.item_type in _UNLOCKABLE_TYPES and line.reference_id
        ]
        report.unlocked_items = account.unlock_items(product_ids)

        # Collections bought as a whole
        for line in order.lines:
            if line.item_type == CartLineType.COLLECTION.value and account.unlock_collection(line.reference_id):
                report.unlocked_collections.append(line.reference_id)
        repo.add(account)

        for collection_id, lines in _card_groups(order).items():
            try:
                account = repo.get(account_id)
                report.granted_cards[collection_id] = self._grant_group(account, collection_id, lines, report)
                repo.add(account)
            except (ObjectNotFoundError, ValidationError) as exc:
                report.failed_collections.append(collection_id)
                logger.error(
                    "collection_unlock_failed",
                    order_id=str(order.id),
                    account_id=str(account_id),
                    collection_id=collection_id,
                    error=str(exc),
                )

        account = repo.get(account_id)
        report.score = self.recompute_score(account)
        repo.add(account)

        if cart_key:
            report.cart_cleared = self.clear_cart(cart_key)

        logger.info(
            "order_unlocked",
            order_id=str(order.id),
            account_id=str(account_id),
            items=len(report.unlocked_items),
            failed_collections=report.failed_collections,
            score=report.score,
        )
        return report

    def _grant_group(self, account: BuyerAccount, collection_id, lines, report: UnlockReport) -> list[str]:
        first = lines[0]
        cards = [
            {
                "product_id": line.reference_id,
                "name": line.product_name,
                "image": line.image,
                "level": line.level,
            }
            for line in lines
        ]
        granted = account.grant_cards(collection_id, first.collection_name, first.collection_image, cards)

        entry = account.find_gaming_collection(collection_id)
        if len(entry.card_ids()) >= COMPLETE_SET_SIZE and account.unlock_collection(collection_id):
            report.unlocked_collections.append(collection_id)
        return granted

    def recompute_score(self, account: BuyerAccount) -> int:
        """Full recompute of the score from catalogue levels of every owned card."""
        card_ids = {card["product_id"] for card in account.owned_cards()}
        levels = current_domain.repository_for(Product).levels_for(card_ids)
        return account.recompute_score(levels)

    def clear_cart(self, cart_key: str) -> bool:
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_key(cart_key)
        if cart is None:
            return False
        cart.clear()
        repo.add(cart)
        return True

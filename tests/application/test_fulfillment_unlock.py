"""Tests for granting purchased content after payment."""

from protean import current_domain
from protean.exceptions import ValidationError

from storefront.account.account import BuyerAccount
from storefront.cart.cart import Cart
from storefront.cart.lines import CartLineType
from storefront.catalogue.collection import COMPLETE_SET_SIZE, Collection, CollectionKind
from storefront.catalogue.product import Product
from storefront.checkout.expansion import CollectionExpansionResolver
from storefront.fulfillment.unlock import FulfillmentUnlockService
from storefront.order.ledger import OrderLedger, PaymentMeta
from storefront.order.order import PaymentMethod, PaymentStatus


def _account():
    account = BuyerAccount.register(username="asha", email="asha@example.com")
    current_domain.repository_for(BuyerAccount).add(account)
    return account


def _order(account, lines, address):
    total = sum(line["unit_price"] * line["quantity"] for line in lines)
    return OrderLedger().commit(
        buyer_id=account.id,
        lines=lines,
        pricing={"subtotal": total, "shipping_cost": 0.0, "discount_total": 0.0, "total_amount": total},
        shipping_address=address,
        payment_meta=PaymentMeta(method=PaymentMethod.ONLINE, status=PaymentStatus.PAID),
    )


def _case_line(phone_case):
    return {
        "item_type": "item",
        "reference_id": str(phone_case.id),
        "product_name": phone_case.name,
        "unit_price": 349.0,
        "quantity": 1,
    }


def _design_line():
    return {"item_type": "customDesign", "product_name": "Custom design (iPhone 15)", "unit_price": 499.0, "quantity": 1}


def _reload(account):
    return current_domain.repository_for(BuyerAccount).get(account.id)


class TestUnlock:
    def test_products_are_unlocked(self, address, phone_case):
        account = _account()
        order = _order(account, [_case_line(phone_case)], address)

        report = FulfillmentUnlockService().apply(account.id, order)

        assert report.unlocked_items == [str(phone_case.id)]
        assert str(phone_case.id) in _reload(account).unlocked_item_ids()

    def test_custom_designs_unlock_nothing(self, address):
        account = _account()
        order = _order(account, [_design_line()], address)

        report = FulfillmentUnlockService().apply(account.id, order)

        assert report.unlocked_items == []

    def test_cards_are_granted_and_scored(self, address, gaming_collection):
        account = _account()
        lines = CollectionExpansionResolver().expand(gaming_collection.id, 2, 200.0, set())
        order = _order(account, lines, address)

        report = FulfillmentUnlockService().apply(account.id, order)

        stored = _reload(account)
        entry = stored.find_gaming_collection(gaming_collection.id)
        assert len(entry.card_ids()) == 2
        assert stored.score == sum(line["level"] for line in lines)
        assert report.score == stored.score
        assert str(gaming_collection.id) not in stored.unlocked_collection_ids()

    def test_complete_set_unlocks_collection(self, address, gaming_collection):
        account = _account()
        lines = CollectionExpansionResolver().expand(gaming_collection.id, 5, 500.0, set())

        report = FulfillmentUnlockService().apply(account.id, _order(account, lines, address))

        assert str(gaming_collection.id) in report.unlocked_collections
        assert str(gaming_collection.id) in _reload(account).unlocked_collection_ids()
        assert _reload(account).score == 15

    def test_applying_twice_changes_nothing(self, address, gaming_collection):
        account = _account()
        lines = CollectionExpansionResolver().expand(gaming_collection.id, 5, 500.0, set())
        order = _order(account, lines, address)
        service = FulfillmentUnlockService()
        service.apply(account.id, order)

        report = service.apply(account.id, order)

        assert report.unlocked_items == []
        assert report.unlocked_collections == []
        assert _reload(account).score == 15

    def test_score_follows_catalogue_level_changes(self, address, gaming_collection, cards):
        account = _account()
        lines = CollectionExpansionResolver().expand(gaming_collection.id, 5, 500.0, set())
        service = FulfillmentUnlockService()
        service.apply(account.id, _order(account, lines, address))

        products = current_domain.repository_for(Product)
        card = products.get(cards[0].id)
        card.level = 10
        products.add(card)

        assert service.recompute_score(_reload(account)) == 24

    def test_whole_collection_line_unlocks_collection(self, address, empty_gaming_collection):
        account = _account()
        line = {
            "item_type": "collection",
            "reference_id": str(empty_gaming_collection.id),
            "product_name": empty_gaming_collection.name,
            "unit_price": 150.0,
            "quantity": 1,
        }

        report = FulfillmentUnlockService().apply(account.id, _order(account, [line], address))

        assert report.unlocked_collections == [str(empty_gaming_collection.id)]

    def test_cart_is_cleared_last(self, address, phone_case):
        cart = Cart.create("guest_unlock")
        cart.add_line(CartLineType.ITEM, quantity=1, unit_price=349.0, reference_id=str(phone_case.id))
        current_domain.repository_for(Cart).add(cart)
        account = _account()
        order = _order(account, [_case_line(phone_case)], address)

        report = FulfillmentUnlockService().apply(account.id, order, cart_key="guest_unlock")

        assert report.cart_cleared is True
        assert current_domain.repository_for(Cart).find_by_key("guest_unlock").is_empty

    def test_missing_cart_is_not_an_error(self, address):
        account = _account()
        order = _order(account, [_design_line()], address)
        assert FulfillmentUnlockService().apply(account.id, order, cart_key="nobody").cart_cleared is False


class TestPartialUnlockFailure:
    def test_failed_collection_does_not_block_others(self, address, gaming_collection, cards, monkeypatch):
        rivals = Collection.create(
            name="Arena Rivals",
            kind=CollectionKind.GAMING.value,
            base_price=100.0,
            member_ids=[str(card.id) for card in cards],
        )
        current_domain.repository_for(Collection).add(rivals)

        resolver = CollectionExpansionResolver()
        legends_lines = resolver.expand(gaming_collection.id, 2, 200.0, set())
        rivals_lines = resolver.expand(rivals.id, COMPLETE_SET_SIZE, 500.0, set())
        account = _account()
        order = _order(account, legends_lines + rivals_lines, address)

        grant_cards = BuyerAccount.grant_cards

        def failing_grant(self, collection_id, *args, **kwargs):
            if str(collection_id) == str(gaming_collection.id):
                raise ValidationError({"cards": ["Card storage rejected the write"]})
            return grant_cards(self, collection_id, *args, **kwargs)

        monkeypatch.setattr(BuyerAccount, "grant_cards", failing_grant)

        report = FulfillmentUnlockService().apply(account.id, order)

        assert report.failed_collections == [str(gaming_collection.id)]
        assert len(report.granted_cards[str(rivals.id)]) == COMPLETE_SET_SIZE

        stored = _reload(account)
        assert stored.find_gaming_collection(gaming_collection.id) is None
        assert str(rivals.id) in stored.unlocked_collection_ids()
        assert stored.score == 15
        assert report.score == 15

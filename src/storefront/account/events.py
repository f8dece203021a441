"""Domain events for the BuyerAccount aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="BuyerAccount")
class GuestAccountCreated:
    """An account was created from guest checkout contact details."""

    __version__ = 1

    account_id = Identifier(required=True)
    username = String(required=True)
    email = String(required=True)
    created_at = DateTime(required=True)


@storefront.event(part_of="BuyerAccount")
class ItemsUnlocked:
    """Products became permanently available to the buyer."""

    __version__ = 1

    account_id = Identifier(required=True)
    product_ids = Text(required=True)  # JSON array of newly unlocked ids


@storefront.event(part_of="BuyerAccount")
class CollectionCardsGranted:
    """Cards from a gaming collection were added to the buyer's album."""

    __version__ = 1

    account_id = Identifier(required=True)
    collection_id = String(required=True)
    card_ids = Text(required=True)  # JSON array of newly granted product ids


@storefront.event(part_of="BuyerAccount")
class ScoreRecalculated:
    """The buyer's score was recomputed from every card they own."""

    __version__ = 1

    account_id = Identifier(required=True)
    previous_score = Integer(required=True)
    score = Integer(required=True)

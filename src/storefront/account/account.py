"""BuyerAccount aggregate — the durable owner of unlocked content.

Accounts are created lazily at checkout for guests and are only mutated by
the fulfillment unlock step after a confirmed payment. Ownership is kept as
sets (stored as JSON arrays), so unlocking the same content twice has no
further effect.
"""

import hashlib
import json
import secrets
from datetime import UTC, datetime, timedelta

from protean.fields import Boolean, DateTime, HasMany, Integer, String, Text

from storefront.account.events import (
    CollectionCardsGranted,
    GuestAccountCreated,
    ItemsUnlocked,
    ScoreRecalculated,
)
from storefront.domain import storefront


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@storefront.entity(part_of="BuyerAccount")
class GamingCollection:
    collection_id = String(required=True, max_length=100)
    collection_name = String(max_length=255)
    collection_image = String(max_length=1024)
    cards = Text()  # JSON array of {product_id, name, image, level}

    def card_list(self) -> list[dict]:
        return json.loads(self.cards) if self.cards else []

    def card_ids(self) -> set[str]:
        return {card["product_id"] for card in self.card_list()}


@storefront.aggregate
class BuyerAccount:
    username = String(required=True, max_length=150, unique=True)
    name = String(max_length=255)
    email = String(max_length=254, unique=True)
    phone = String(max_length=20)
    password_hash = String(max_length=255)
    is_verified = Boolean(default=False)
    unlocked_items = Text()  # JSON array of Product ids
    unlocked_collections = Text()  # JSON array of Collection ids
    gaming_collections = HasMany(GamingCollection)
    score = Integer(default=0, min_value=0)
    session_token_hash = String(max_length=64)
    session_expires_at = DateTime()
    created_at = DateTime()

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, username, email=None, phone=None, name=None):
        return cls(
            username=username,
            email=email.lower() if email else None,
            phone=phone,
            name=name,
            unlocked_items=json.dumps([]),
            unlocked_collections=json.dumps([]),
            score=0,
            created_at=datetime.now(UTC),
        )

    @classmethod
    def from_guest_contact(cls, email, phone=None, name=None):
        """Create a verified account for a guest buyer with an unusable random password."""
        now = datetime.now(UTC)
        local_part = email.split("@")[0]
        username = f"{local_part}_{int(now.timestamp() * 1000)}_{secrets.token_hex(2)}"

        account = cls.register(username=username, email=email, phone=phone, name=name)
        account.password_hash = _hash_token(secrets.token_urlsafe(32))
        account.is_verified = True

        account.raise_(
            GuestAccountCreated(
                account_id=str(account.id),
                username=account.username,
                email=account.email,
                created_at=now,
            )
        )
        return account

    # -------------------------------------------------------------------
    # Ownership queries
    # -------------------------------------------------------------------
    def unlocked_item_ids(self) -> set[str]:
        return set(json.loads(self.unlocked_items)) if self.unlocked_items else set()

    def unlocked_collection_ids(self) -> set[str]:
        return set(json.loads(self.unlocked_collections)) if self.unlocked_collections else set()

    def find_gaming_collection(self, collection_id) -> GamingCollection | None:
        return next((gc for gc in self.gaming_collections if gc.collection_id == str(collection_id)), None)

    def owned_cards(self) -> list[dict]:
        return [card for gc in self.gaming_collections for card in gc.card_list()]

    # -------------------------------------------------------------------
    # Unlocking
    # -------------------------------------------------------------------
    def unlock_items(self, product_ids) -> list[str]:
        """Add products to the unlocked set; returns only the ids that were new."""
        owned = json.loads(self.unlocked_items) if self.unlocked_items else []
        added = []
        for product_id in product_ids:
            product_id = str(product_id)
            if product_id not in owned and product_id not in added:
                added.append(product_id)

        if added:
            self.unlocked_items = json.dumps(owned + added)
            self.raise_(ItemsUnlocked(account_id=str(self.id), product_ids=json.dumps(added)))
        return added

    def unlock_collection(self, collection_id) -> bool:
        owned = json.loads(self.unlocked_collections) if self.unlocked_collections else []
        if str(collection_id) in owned:
            return False
        self.unlocked_collections = json.dumps(owned + [str(collection_id)])
        return True

    def grant_cards(self, collection_id, collection_name, collection_image, cards) -> list[str]:
        """Upsert a gaming collection entry, appending cards not already present."""
        entry = self.find_gaming_collection(collection_id)
        if entry is None:
            entry = GamingCollection(
                collection_id=str(collection_id),
                collection_name=collection_name,
                collection_image=collection_image,
                cards=json.dumps([]),
            )
            self.add_gaming_collections(entry)

        existing = entry.card_list()
        present = {card["product_id"] for card in existing}
        added = []
        for card in cards:
            if card["product_id"] not in present:
                existing.append(card)
                present.add(card["product_id"])
                added.append(card["product_id"])

        if added:
            entry.cards = json.dumps(existing)
            self.raise_(
                CollectionCardsGranted(
                    account_id=str(self.id),
                    collection_id=str(collection_id),
                    card_ids=json.dumps(added),
                )
            )
        return added

    def recompute_score(self, levels: dict[str, int]) -> int:
        """Set the score to the sum of levels across every owned card.

        ``levels`` maps product ids to their current catalogue level; cards
        missing from it fall back to the level captured when granted.
        """
        previous = self.score or 0
        score = 0
        for card in self.owned_cards():
            level = levels.get(card["product_id"], card.get("level"))
            score += int(level or 0)

        self.score = score
        if score != previous:
            self.raise_(
                ScoreRecalculated(
                    account_id=str(self.id),
                    previous_score=previous,
                    score=score,
                )
            )
        return score

    # -------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------
    @property
    def has_session(self) -> bool:
        if not self.session_token_hash or self.session_expires_at is None:
            return False
        expires_at = self.session_expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at > datetime.now(UTC)

    def issue_session_token(self, ttl_days: int) -> str:
        """Mint a session token; only its hash is kept on the account."""
        token = secrets.token_urlsafe(32)
        self.session_token_hash = _hash_token(token)
        self.session_expires_at = datetime.now(UTC) + timedelta(days=ttl_days)
        return token

    def session_token_matches(self, token: str) -> bool:
        return self.has_session and secrets.compare_digest(self.session_token_hash, _hash_token(token))


@storefront.repository(part_of=BuyerAccount)
class BuyerAccountRepository:
    def find_by_email(self, email: str) -> BuyerAccount | None:
        if not email:
            return None
        results = self._dao.query.filter(email=email.lower()).all().items
        return results[0] if results else None

    def find_by_phone(self, phone: str) -> BuyerAccount | None:
        if not phone:
            return None
        results = self._dao.query.filter(phone=phone).all().items
        return results[0] if results else None

    def find_by_contact(self, email: str | None, phone: str | None) -> BuyerAccount | None:
        return self.find_by_email(email) or self.find_by_phone(phone)

    def top_by_score(self, limit: int = 10) -> list[BuyerAccount]:
        return self._dao.query.order_by("-score").limit(limit).all().items

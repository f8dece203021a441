"""Guest Identity Resolver — turns a checkout buyer reference into an account.

Clients send either a registered account id or a guest sentinel (missing,
``"guest"`` or ``"guest_<anything>"``) together with checkout contact
details. Resolution looks the account up by id, then by email or phone, and
finally creates one. A concurrent request that creates the same account
first is detected through the email uniqueness check and the winner is
reused.
"""

import re
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.account.account import BuyerAccount
from storefront.config import Settings

logger = structlog.get_logger(__name__)

GUEST_SENTINEL = "guest"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


@dataclass(frozen=True)
class CheckoutContact:
    email: str
    phone: str | None = None
    name: str | None = None

    def __post_init__(self):
        errors = {}
        if not self.email or not _EMAIL_PATTERN.match(self.email):
            errors["email"] = [f"Invalid email address: {self.email!r}"]
        if self.phone and (not re.search(r"\d", self.phone) or not _PHONE_PATTERN.match(self.phone)):
            errors["phone"] = [f"Invalid phone number: {self.phone!r}"]
        if errors:
            raise ValidationError(errors)


@dataclass(frozen=True)
class Registered:
    account_id: str


@dataclass(frozen=True)
class Guest:
    contact: CheckoutContact


BuyerRef = Registered | Guest


@dataclass(frozen=True)
class ResolvedBuyer:
    account_id: str
    is_new_account: bool
    session_token: str | None = None


def is_guest_token(token: str | None) -> bool:
    return not token or token == GUEST_SENTINEL or token.startswith(f"{GUEST_SENTINEL}_")


def buyer_ref_from(token: str | None, contact: CheckoutContact) -> BuyerRef:
    """Parse a client-supplied buyer token into a tagged buyer reference."""
    if is_guest_token(token):
        return Guest(contact=contact)
    return Registered(account_id=token)


class GuestIdentityResolver:
    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve(self, ref: BuyerRef, contact: CheckoutContact) -> ResolvedBuyer:
        repo = current_domain.repository_for(BuyerAccount)

        if isinstance(ref, Registered):
            try:
                account = repo.get(ref.account_id)
            except ObjectNotFoundError:
                logger.warning("buyer_token_unknown", account_id=ref.account_id)
            else:
                return ResolvedBuyer(account_id=str(account.id), is_new_account=False)

        account = repo.find_by_contact(contact.email, contact.phone)
        if account is not None:
            return self._existing(account)

        return self._create(contact)

    def _existing(self, account: BuyerAccount) -> ResolvedBuyer:
        token = None
        if not account.has_session:
            token = account.issue_session_token(self.settings.session_ttl_days)
            current_domain.repository_for(BuyerAccount).add(account)
        return ResolvedBuyer(account_id=str(account.id), is_new_account=False, session_token=token)

    def _create(self, contact: CheckoutContact) -> ResolvedBuyer:
        repo = current_domain.repository_for(BuyerAccount)
        account = BuyerAccount.from_guest_contact(email=contact.email, phone=contact.phone, name=contact.name)
        token = account.issue_session_token(self.settings.session_ttl_days)

        try:
            repo.add(account)
        except ValidationError as exc:
            if "email" not in exc.messages:
                raise
            winner = repo.find_by_contact(contact.email, contact.phone)
            if winner is None:
                raise
            logger.info("guest_account_race_recovered", account_id=str(winner.id), email=contact.email)
            return self._existing(winner)

        logger.info("guest_account_created", account_id=str(account.id), email=account.email)
        return ResolvedBuyer(account_id=str(account.id), is_new_account=True, session_token=token)

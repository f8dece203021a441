import pytest
from protean.exceptions import ValidationError

from storefront.account.resolver import CheckoutContact, Guest, Registered, buyer_ref_from, is_guest_token


class TestCheckoutContact:
    def test_valid_contact(self):
        contact = CheckoutContact(email="asha@example.com", phone="+91 98450-12345")
        assert contact.email == "asha@example.com"

    @pytest.mark.parametrize("email", ["", "asha", "asha@example", "a sha@example.com"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationError) as exc:
            CheckoutContact(email=email)
        assert "email" in exc.value.messages

    def test_invalid_phone(self):
        with pytest.raises(ValidationError) as exc:
            CheckoutContact(email="asha@example.com", phone="call me")
        assert "phone" in exc.value.messages


class TestBuyerRef:
    @pytest.mark.parametrize("token", [None, "", "guest", "guest_1729"])
    def test_guest_tokens(self, token):
        assert is_guest_token(token)
        assert isinstance(buyer_ref_from(token, CheckoutContact(email="a@b.co")), Guest)

    def test_account_id_is_registered(self):
        ref = buyer_ref_from("acct-42", CheckoutContact(email="a@b.co"))
        assert ref == Registered(account_id="acct-42")

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    """Run every test inside the domain context and wipe stores and adapters afterwards."""
    from protean import current_domain

    from storefront.payments import reset_gateway
    from storefront.shipping import reset_carrier

    with storefront_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_carrier()


# ---------------------------------------------------------------------------
# Adapters and settings
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings():
    from storefront.config import Settings

    return Settings(environment="test", shipping_cost=0.0, custom_design_price=499.0)


@pytest.fixture()
def gateway():
    from storefront.payments import set_gateway
    from storefront.payments.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def carrier():
    from storefront.shipping import set_carrier
    from storefront.shipping.fake_adapter import FakeCarrier

    fake = FakeCarrier()
    set_carrier(fake)
    return fake


# ---------------------------------------------------------------------------
# Catalogue data
# ---------------------------------------------------------------------------
@pytest.fixture()
def cards():
    """Five levelled gaming cards, levels 1 through 5, stored in order."""
    from protean import current_domain

    from storefront.catalogue.product import Product

    repo = current_domain.repository_for(Product)
    stored = []
    for level in range(1, 6):
        card = Product.gaming_card(name=f"Card {level}", level=level, price=100.0, image=f"card-{level}.png")
        repo.add(card)
        stored.append(card)
    return stored


@pytest.fixture()
def gaming_collection(cards):
    from protean import current_domain

    from storefront.catalogue.collection import Collection, CollectionKind
    from storefront.catalogue.product import Product, ProductKind

    # A gaming product without a level is never granted from a collection
    unlevelled = Product(name="Unlevelled Card", kind=ProductKind.GAMING.value, price=100.0)
    current_domain.repository_for(Product).add(unlevelled)

    collection = Collection.create(
        name="Arena Legends",
        kind=CollectionKind.GAMING.value,
        base_price=100.0,
        image="arena.png",
        member_ids=[str(card.id) for card in cards] + [str(unlevelled.id)],
    )
    current_domain.repository_for(Collection).add(collection)
    return collection


@pytest.fixture()
def empty_gaming_collection():
    from protean import current_domain

    from storefront.catalogue.collection import Collection, CollectionKind

    collection = Collection.create(name="Coming Soon", kind=CollectionKind.GAMING.value, base_price=150.0)
    current_domain.repository_for(Collection).add(collection)
    return collection


@pytest.fixture()
def phone_case():
    from protean import current_domain

    from storefront.catalogue.product import Product

    product = Product(name="Matte Phone Case", price=349.0, stock=10, image="case.png")
    current_domain.repository_for(Product).add(product)
    return product


@pytest.fixture()
def coupon():
    """WELCOME10: 10% off, no minimum, five uses."""
    from protean import current_domain

    from storefront.coupon.coupon import Coupon

    welcome = Coupon.create(
        code="welcome10",
        discount_percentage=10,
        expiry_date=datetime.now(UTC) + timedelta(days=30),
        max_usage=5,
    )
    current_domain.repository_for(Coupon).add(welcome)
    return welcome


@pytest.fixture()
def address():
    return {
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "+91 98450 12345",
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "country": "India",
    }

"""Storefront database management CLI.

Provides commands to create and drop the database schema and to load a
small demo catalogue.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py seed       # Load demo products, collections and coupons
"""

import argparse
import sys
from datetime import UTC, datetime, timedelta


def setup_databases():
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_databases():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def seed():
    """Load a gaming collection of five cards, a phone case and two coupons."""
    from storefront.catalogue.collection import Collection, CollectionKind
    from storefront.catalogue.product import Product
    from storefront.coupon.coupon import Coupon
    from storefront.domain import storefront

    storefront.init()
    with storefront.domain_context():
        products = storefront.repository_for(Product)
        cards = [Product.gaming_card(name=f"Arena Card {level}", level=level, price=99.0) for level in range(1, 6)]
        for card in cards:
            products.add(card)
        products.add(Product(name="Matte Phone Case", price=349.0, stock=50))

        storefront.repository_for(Collection).add(
            Collection.create(
                name="Arena Legends",
                kind=CollectionKind.GAMING.value,
                base_price=99.0,
                member_ids=[str(card.id) for card in cards],
            )
        )

        coupons = storefront.repository_for(Coupon)
        expiry = datetime.now(UTC) + timedelta(days=90)
        coupons.add(Coupon.create(code="WELCOME10", discount_percentage=10, expiry_date=expiry, max_usage=100))
        coupons.add(
            Coupon.create(code="BIG20", discount_percentage=20, expiry_date=expiry, minimum_amount=500, max_usage=10)
        )
    print("Seeded 6 products, 1 collection and 2 coupons.")


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed", help="Load demo catalogue data")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "seed":
        seed()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

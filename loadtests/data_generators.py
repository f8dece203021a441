"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the checkout validation rules
(email and phone formats, required address fields) and match the field
names expected by the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")


def cart_key() -> str:
    return f"guest_lt_{uuid.uuid4().hex[:12]}"


def valid_email() -> str:
    local = fake.user_name()[:20]
    return f"{local}.{uuid.uuid4().hex[:4]}@{fake.free_email_domain()}"


def valid_phone() -> str:
    """Phones matching ^\\+?[\\d\\s\\-()]+$"""
    return f"+91 {random.randint(70000, 99999)} {random.randint(10000, 99999)}"


def shipping_address() -> dict:
    return {
        "name": fake.name()[:100],
        "email": valid_email(),
        "phone": valid_phone(),
        "street": fake.street_address()[:255],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "postal_code": fake.postcode()[:20],
        "country": "India",
    }


def custom_design_line() -> dict:
    """A custom design line needs no catalogue data, so it works against an empty store."""
    return {
        "line_type": "customDesign",
        "quantity": random.randint(1, 2),
        "selected_brand": random.choice(["Apple", "Samsung", "OnePlus"]),
        "selected_model": random.choice(["iPhone 15", "Galaxy S24", "Nord 4"]),
        "custom_design": {
            "design_image_url": f"https://cdn.example.com/designs/{uuid.uuid4().hex[:8]}.png",
            "phone_model": "iPhone 15",
            "transform": {"x": random.randint(-20, 20), "y": random.randint(-20, 20), "scale": 1.0, "rotation": 0},
        },
    }

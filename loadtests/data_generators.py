"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the API's Pydantic request
schemas and the domain's validation rules.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")

# Rough bounding box around Bengaluru, where the simulated couriers ride
_CITY_LAT = (12.85, 13.10)
_CITY_LON = (77.45, 77.75)


def user_token(role: str = "customer") -> str:
    """Bearer token understood by the fake token verifier."""
    return f"{role}:lt-{role}-{uuid.uuid4().hex[:10]}"


def product_data(stock: int | None = None) -> dict:
    price = round(random.uniform(50.0, 2500.0), 2)
    return {
        "name": f"{fake.word().capitalize()} {fake.word()}"[:255],
        "price": price,
        "finalPrice": round(price * random.choice([1.0, 0.9, 0.8]), 2),
        "stock": stock if stock is not None else random.randint(50, 500),
        "image": fake.image_url(),
        "shopId": f"shop-{uuid.uuid4().hex[:8]}",
    }


def shipping_address() -> dict:
    return {
        "name": fake.name()[:255],
        "address": fake.street_address()[:500],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "postalCode": fake.postcode()[:20],
        "country": "India",
        "phone": fake.phone_number()[:30],
    }


def checkout_payload() -> dict:
    return {
        "shippingAddress": shipping_address(),
        "paymentMethod": random.choice(["card", "upi", "netbanking", "wallet"]),
        "taxAmount": round(random.uniform(0, 50), 2),
        "shippingAmount": random.choice([0.0, 40.0, 60.0]),
    }


def city_point() -> tuple[float, float]:
    return round(random.uniform(*_CITY_LAT), 6), round(random.uniform(*_CITY_LON), 6)

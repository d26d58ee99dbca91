"""
Demo fixture products.

Each product starts with a manufacturing event that books its initial stock
and may progress through warehouse, transit and retail delivery (which books
a sale as negative stock). Roughly one product in ten is flagged as a
suspected counterfeit.
"""
import random
from datetime import date, timedelta
from typing import Optional

from .chain import compute_current_stock, create_supply_chain_event
from .hashing import GENESIS_HASH
from .schemas import EventStatus, Product, StakeholderType

CATEGORIES = ["Electronics", "Food & Beverage", "Pharmaceuticals", "Clothing", "Home & Garden"]
MANUFACTURERS = ["TechCorp", "FreshFoods Inc", "PharmaSafe", "StyleWear", "HomeGoods Ltd"]
PERISHABLE = {"Food & Beverage", "Pharmaceuticals"}

_BATCH_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def _coords(rng: random.Random, lat: float, lng: float, spread: float) -> dict[str, float]:
    return {"lat": round(lat + rng.random() * spread, 4), "lng": round(lng + rng.random() * spread, 4)}


def generate_sample_product(index: int, rng: random.Random,
                            today: Optional[date] = None) -> Product:
    today = today or date.today()
    category = CATEGORIES[(index - 1) % len(CATEGORIES)]
    manufacturer = MANUFACTURERS[(index - 1) % len(MANUFACTURERS)]
    made_on = today - timedelta(days=rng.randint(0, 30))
    expiry = made_on + timedelta(days=365) if category in PERISHABLE else None

    product = Product(
        id=f"PROD_{index:04d}",
        name=f"{category} Product {index}",
        category=category,
        manufacturer=manufacturer,
        batch_number="BATCH_" + "".join(rng.choice(_BATCH_ALPHABET) for _ in range(8)),
        manufacturing_date=made_on.isoformat(),
        expiry_date=expiry.isoformat() if expiry else None,
        authenticity=rng.random() > 0.1,
        current_status=EventStatus.MANUFACTURED,
        current_location=f"{manufacturer} Factory",
    )

    initial_stock = rng.randint(50, 250)
    event = create_supply_chain_event(
        product.id, EventStatus.MANUFACTURED, product.current_location,
        manufacturer, StakeholderType.MANUFACTURER, GENESIS_HASH,
        {"temperature": 22, "humidity": 45,
         "coordinates": _coords(rng, 40.7128, -74.0060, 10), "stockChange": initial_stock},
    )
    product.events.append(event)

    steps = [
        (0.3, EventStatus.WAREHOUSED, "Central Warehouse", "WareHouse Co",
         StakeholderType.WAREHOUSE, {"temperature": 20, "humidity": 50}, (40.7580, -73.9855, 5)),
        (0.5, EventStatus.IN_TRANSIT, "Highway 101", "FastShip Logistics",
         StakeholderType.TRANSPORTER, {"temperature": 18, "humidity": 55}, (40.7489, -73.9680, 3)),
        (0.7, EventStatus.DELIVERED, "Walmart Store #1234", "Walmart",
         StakeholderType.RETAILER, {"temperature": 21, "humidity": 48}, (40.7831, -73.9712, 2)),
    ]
    for threshold, status, location, stakeholder, kind, data, (lat, lng, spread) in steps:
        if rng.random() <= threshold:
            break
        data = dict(data, coordinates=_coords(rng, lat, lng, spread))
        if status is EventStatus.DELIVERED:
            data["stockChange"] = -rng.randint(1, initial_stock)
        event = create_supply_chain_event(product.id, status, location, stakeholder,
                                          kind, event.hash, data)
        product.events.append(event)
        product.current_status = status
        product.current_location = location

    product.current_stock = compute_current_stock(product.events)
    return product


def generate_sample_products(count: int = 10, rng: Optional[random.Random] = None) -> list[Product]:
    rng = rng or random.Random()
    return [generate_sample_product(i, rng) for i in range(1, count + 1)]

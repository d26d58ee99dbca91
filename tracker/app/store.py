from __future__ import annotations

import json
import logging
import random
import threading
import uuid
from pathlib import Path
from typing import Optional

from .chain import compute_current_stock, create_supply_chain_event, last_hash
from .config import Settings, get_settings
from .samples import generate_sample_products
from .schemas import (
    EventStatus, NewEventRequest, NewProductRequest, Product,
    StakeholderType, SupplyChainEvent,
)

log = logging.getLogger("tracker.store")


class ProductStore:
    """Product records backed by a JSON file, or memory only when no path is given.

    current_stock is recomputed from events whenever products are loaded or
    changed; a stored value is never trusted.
    """

    def __init__(self, path: Optional[str] = None, seed_count: int = 0,
                 rng: Optional[random.Random] = None):
        self._path = Path(path) if path else None
        self._lock = threading.Lock()
        self._products: dict[str, Product] = {}
        self._load()
        if not self._products and seed_count > 0:
            for p in generate_sample_products(seed_count, rng):
                self._products[p.id] = p
            self._save()
            log.info("seeded %d sample products", seed_count)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProductStore":
        seed = settings.sample_product_count if settings.seed_sample_data else 0
        return cls(settings.products_file, seed_count=seed)

    def _load(self) -> None:
        if not self._path or not self._path.exists():
            return
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        for item in raw:
            product = Product.model_validate(item)
            product.current_stock = compute_current_stock(product.events)
            self._products[product.id] = product
        log.info("loaded %d products from %s", len(self._products), self._path)

    def _save(self) -> None:
        if not self._path:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [p.model_dump(mode="json", by_alias=True) for p in self._products.values()]
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)

    def list_products(self) -> list[Product]:
        with self._lock:
            return list(self._products.values())

    def get(self, product_id: str) -> Product:
        with self._lock:
            product = self._products.get(product_id)
        if product is None:
            raise ValueError(f"product {product_id} not found")
        return product

    def add(self, req: NewProductRequest) -> Product:
        """Register a product with its genesis manufacturing event."""
        product_id = f"PROD_{uuid.uuid4().hex[:8].upper()}"
        data = {"stockChange": req.initial_stock} if req.initial_stock else {}
        genesis = create_supply_chain_event(
            product_id, EventStatus.MANUFACTURED, req.current_location,
            req.manufacturer, StakeholderType.MANUFACTURER, additional_data=data,
        )
        product = Product(
            id=product_id,
            name=req.name,
            category=req.category,
            manufacturer=req.manufacturer,
            batch_number=req.batch_number,
            manufacturing_date=req.manufacturing_date,
            expiry_date=req.expiry_date,
            authenticity=True,
            current_status=EventStatus.MANUFACTURED,
            current_location=req.current_location,
            events=[genesis],
        )
        product.current_stock = compute_current_stock(product.events)
        with self._lock:
            self._products[product.id] = product
            self._save()
        log.info("added product id=%s name=%s stock=%s", product.id, product.name,
                 product.current_stock)
        return product

    def record_event(self, product_id: str, req: NewEventRequest) -> SupplyChainEvent:
        """Append a checkpoint chained to the product's last event hash."""
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise ValueError(f"product {product_id} not found")

            data: dict = {}
            if req.notes:
                data["notes"] = req.notes
            if req.temperature is not None:
                data["temperature"] = req.temperature
            if req.humidity is not None:
                data["humidity"] = req.humidity
            if req.coordinates:
                data["coordinates"] = dict(req.coordinates)
            if req.stock_change:
                data["stockChange"] = req.stock_change

            event = create_supply_chain_event(
                product.id, req.status, req.location, req.stakeholder,
                req.stakeholder_type, last_hash(product), data,
            )
            product.events.append(event)
            product.current_status = event.status
            product.current_location = event.location
            product.current_stock = compute_current_stock(product.events)
            self._save()

        log.info("recorded event product_id=%s status=%s hash=%s",
                 product_id, event.status.value, event.hash)
        return event


_store: ProductStore | None = None


def get_store() -> ProductStore:
    global _store
    if _store is None:
        _store = ProductStore.from_settings(get_settings())
    return _store


def reset_store(store: Optional[ProductStore] = None) -> None:
    """Replace the process-wide store (tests, reconfiguration)."""
    global _store
    _store = store

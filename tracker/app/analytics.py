"""
Dashboard aggregates over the product set.

All figures are derived on each call from the products' events; nothing is
cached.
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from .chain import compute_current_stock, verify_blockchain_integrity
from .schemas import EventStatus, Product


@dataclass
class TrackingSummary:
    total_products: int
    total_events: int
    authentic: int
    flagged: int
    intact_chains: int
    total_stock: float
    by_status: dict[str, int] = field(default_factory=dict)


@dataclass
class StakeholderEntry:
    name: str
    stakeholder_type: str
    event_count: int
    products: list[str]
    last_location: str
    last_seen: int


def summarize(products: Sequence[Product]) -> TrackingSummary:
    by_status = Counter(p.current_status.value for p in products)
    return TrackingSummary(
        total_products=len(products),
        total_events=sum(len(p.events) for p in products),
        authentic=sum(1 for p in products if p.authenticity),
        flagged=sum(1 for p in products if not p.authenticity),
        intact_chains=sum(1 for p in products if verify_blockchain_integrity(p.events)),
        total_stock=sum(compute_current_stock(p.events) for p in products),
        by_status={s.value: by_status.get(s.value, 0) for s in EventStatus},
    )


def stakeholder_directory(products: Sequence[Product]) -> list[StakeholderEntry]:
    """One entry per stakeholder name, ordered by activity."""
    entries: dict[str, StakeholderEntry] = {}
    for product in products:
        for e in product.events:
            entry = entries.get(e.stakeholder)
            if entry is None:
                entry = entries[e.stakeholder] = StakeholderEntry(
                    name=e.stakeholder,
                    stakeholder_type=e.stakeholder_type.value,
                    event_count=0,
                    products=[],
                    last_location=e.location,
                    last_seen=e.timestamp,
                )
            entry.event_count += 1
            if product.id not in entry.products:
                entry.products.append(product.id)
            if e.timestamp >= entry.last_seen:
                entry.last_seen = e.timestamp
                entry.last_location = e.location
    return sorted(entries.values(), key=lambda s: (-s.event_count, s.name))

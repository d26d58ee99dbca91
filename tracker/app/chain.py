"""
chain.py - Per-product event chain: creation, verification, block-log view.

Each event stores hash = H(ordered event JSON + previous_hash), where
previous_hash is the hash of the preceding event of the same product
(GENESIS_HASH for the first). This is a local single-writer hash chain:
tamper-evident, not tamper-proof, and with the default checksum not even
collision resistant (see hashing.generate_hash).

The block log groups events of all products into fixed-size display blocks
with their own hash chain. It is a presentation view only; the integrity
contract is per-product chain verification.
"""
import json
import logging
import secrets
import time
from typing import Iterable, Optional, Sequence

from .hashing import (
    GENESIS_BLOCK_HASH, GENESIS_HASH, HashFunction,
    event_json, generate_block_hash, generate_hash,
)
from .schemas import Block, EventStatus, Product, StakeholderType, SupplyChainEvent

log = logging.getLogger("tracker.chain")

DEFAULT_BLOCK_SIZE = 5


def now_ms() -> int:
    return int(time.time() * 1000)


def _event_id(timestamp: int) -> str:
    return f"event_{timestamp}_{secrets.token_hex(5)[:9]}"


def _status_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def compute_event_hash(event: SupplyChainEvent, hash_fn: HashFunction = generate_hash) -> str:
    """Recompute the hash an event should carry given its content and previous_hash."""
    payload = event_json(
        event.product_id, event.timestamp, event.location,
        _status_value(event.status), event.stakeholder,
        _status_value(event.stakeholder_type), event.data,
    )
    return hash_fn(payload + event.previous_hash)


def create_supply_chain_event(
    product_id: str,
    status: EventStatus,
    location: str,
    stakeholder: str,
    stakeholder_type: StakeholderType,
    previous_hash: str = GENESIS_HASH,
    additional_data: Optional[dict] = None,
    *,
    hash_fn: HashFunction = generate_hash,
) -> SupplyChainEvent:
    """Create a new event linked to previous_hash. Reads the wall clock once."""
    timestamp = now_ms()
    data = dict(additional_data or {})
    status = EventStatus(status)
    stakeholder_type = StakeholderType(stakeholder_type)
    payload = event_json(product_id, timestamp, location, status.value,
                         stakeholder, stakeholder_type.value, data)
    return SupplyChainEvent(
        id=_event_id(timestamp),
        product_id=product_id,
        timestamp=timestamp,
        location=location,
        status=status,
        stakeholder=stakeholder,
        stakeholder_type=stakeholder_type,
        hash=hash_fn(payload + previous_hash),
        previous_hash=previous_hash,
        data=data,
    )


def find_broken_link(events: Sequence[SupplyChainEvent],
                     *, hash_fn: HashFunction = generate_hash) -> Optional[int]:
    """Return the index of the first event failing its link or hash check, else None.

    The first event is never checked: its previous_hash has no predecessor to
    compare against and its own hash is taken as given.
    """
    for i in range(1, len(events)):
        current, previous = events[i], events[i - 1]
        if current.previous_hash != previous.hash:
            return i
        if current.hash != compute_event_hash(current, hash_fn):
            return i
    return None


def verify_blockchain_integrity(events: Sequence[SupplyChainEvent],
                                *, hash_fn: HashFunction = generate_hash) -> bool:
    """True when every consecutive pair links correctly and every hash recomputes.

    An empty or single-event sequence is vacuously intact.
    """
    broken = find_broken_link(events, hash_fn=hash_fn)
    if broken is not None:
        ev = events[broken]
        log.warning("chain broken product_id=%s index=%d event_id=%s",
                    ev.product_id, broken, ev.id)
        return False
    return True


def compute_current_stock(events: Iterable[SupplyChainEvent]) -> int | float:
    """Sum of stockChange across events. The only authoritative stock figure."""
    return sum(e.data.get("stockChange") or 0 for e in events)


def last_hash(product: Product) -> str:
    return product.events[-1].hash if product.events else GENESIS_HASH


def build_block_log(products: Sequence[Product], block_size: int = DEFAULT_BLOCK_SIZE,
                    hash_fn: HashFunction = generate_block_hash) -> list[Block]:
    """Group all events by timestamp into display blocks.

    Block hash = hash_fn(JSON list of member event hashes + previous block hash).
    A block is valid iff the chain of every product owning one of its events
    verifies.
    """
    if block_size < 1:
        raise ValueError("block_size must be >= 1")

    intact = {p.id: verify_blockchain_integrity(p.events) for p in products}
    all_events = sorted((e for p in products for e in p.events), key=lambda e: e.timestamp)

    blocks: list[Block] = []
    previous = GENESIS_BLOCK_HASH
    for start in range(0, len(all_events), block_size):
        members = all_events[start:start + block_size]
        block_data = json.dumps([e.hash for e in members], separators=(",", ":"))
        block_hash = hash_fn(block_data + previous)
        blocks.append(Block(
            block_number=start // block_size + 1,
            events=members,
            block_hash=block_hash,
            previous_block_hash=previous,
            timestamp=members[0].timestamp,
            is_valid=all(intact.get(e.product_id, True) for e in members),
        ))
        previous = block_hash
    return blocks


def search_blocks(blocks: Sequence[Block], query: str) -> list[Block]:
    """Case-insensitive match on block hash or any member's product, stakeholder, location."""
    q = query.lower()
    if not q:
        return list(blocks)
    return [
        b for b in blocks
        if q in b.block_hash.lower()
        or any(q in e.product_id.lower() or q in e.stakeholder.lower() or q in e.location.lower()
               for e in b.events)
    ]

"""
Hashing primitives for the provenance tracker.

Two serialisation disciplines live here and must never be interchanged:

  event_json()       - insertion-ordered compact JSON. Used as input to the
                       event chain checksum; field order is part of the hash.
  stable_stringify() - keys sorted recursively. Used for claim records, so the
                       same record always produces the same digest regardless
                       of how its keys were inserted.

Two digests:

  generate_hash()    - 32-bit rolling polynomial checksum (base 31).
                       NOT cryptographically secure: collisions are trivial to
                       construct. Kept bit-for-bit for compatibility with
                       existing event chains. Any real deployment must swap it
                       for a genuine digest via the HashFunction parameter of
                       the chain functions.
  sha256_hex()       - SHA-256, used for claim audit-trail hashes.
"""
import hashlib
import json
import math
from typing import Any, Callable

HashFunction = Callable[[str], str]

GENESIS_HASH = "0" * 8
GENESIS_BLOCK_HASH = "0" * 16

_MASK_32 = 0xFFFFFFFF


def _checksum32(data: str) -> int:
    """Signed 32-bit h*31 + c over the UTF-16 code units of data."""
    h = 0
    raw = data.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = (h * 31 + unit) & _MASK_32
    if h & 0x80000000:
        h -= 1 << 32
    return h


def generate_hash(data: str) -> str:
    """Return abs(checksum) as lowercase hex, zero-padded to 8 characters."""
    return format(abs(_checksum32(data)), "x").zfill(8)


def generate_block_hash(data: str) -> str:
    """Same checksum, padded to 16 characters for the block-log view."""
    return format(abs(_checksum32(data)), "x").zfill(16)


def sha256_hex(data: str) -> str:
    """Return the SHA-256 hex digest of a UTF-8 encoded string."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _js_value(obj: Any) -> Any:
    """Coerce values to what JSON.stringify would emit.

    Integral floats lose their fraction (22.0 -> 22) and non-finite floats
    become null.
    """
    if isinstance(obj, bool) or obj is None:
        return obj
    if isinstance(obj, float):
        if not math.isfinite(obj):
            return None
        if obj.is_integer():
            return int(obj)
        return obj
    if isinstance(obj, dict):
        return {str(k): _js_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_js_value(v) for v in obj]
    return obj


def compact_json(obj: Any) -> str:
    """Compact JSON in insertion order, matching JSON.stringify output."""
    return json.dumps(_js_value(obj), separators=(",", ":"), ensure_ascii=False)


def event_json(product_id: str, timestamp: int, location: str, status: str,
               stakeholder: str, stakeholder_type: str, data: dict | None = None) -> str:
    """Return the ordered payload string an event hash is computed over.

    Extra data keys are spread after the base fields. A key that collides with
    a base field replaces its value but keeps the base position.
    """
    payload: dict[str, Any] = {
        "productId": product_id,
        "timestamp": timestamp,
        "location": location,
        "status": status,
        "stakeholder": stakeholder,
        "stakeholderType": stakeholder_type,
    }
    payload.update(data or {})
    return compact_json(payload)


def stable_stringify(obj: Any) -> str:
    """Serialise obj with object keys sorted lexicographically at every level."""
    if isinstance(obj, dict):
        items = (
            json.dumps(str(k), ensure_ascii=False) + ":" + stable_stringify(obj[k])
            for k in sorted(obj, key=str)
        )
        return "{" + ",".join(items) + "}"
    if isinstance(obj, (list, tuple)):
        return "[" + ",".join(stable_stringify(v) for v in obj) + "]"
    return compact_json(obj)

"""
Unit tests for the hashing module.

Covers the rolling checksum (including 32-bit wraparound), the ordered event
serialisation and the key-sorted claim serialisation.
Run with: pytest tests/
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import hashlib

from tracker.app.hashing import (
    compact_json, event_json, generate_block_hash, generate_hash,
    sha256_hex, stable_stringify,
)


def test_generate_hash_is_deterministic():
    assert generate_hash("supply chain") == generate_hash("supply chain")
    assert len(generate_hash("supply chain")) == 8


def test_generate_hash_empty_string_is_zero():
    assert generate_hash("") == "00000000"


def test_generate_hash_small_values_are_zero_padded():
    assert generate_hash("a") == "00000061"
    assert generate_hash("ab") == "00000c21"


def test_generate_hash_wraps_to_32_bits():
    # h*31 + c with signed 32-bit overflow, same as java.lang.String.hashCode
    assert generate_hash("hello") == "05e918d2"


def test_generate_hash_min_int_takes_absolute_value():
    # "polygenelubricants" hashes to -2**31; abs() yields 0x80000000
    assert generate_hash("polygenelubricants") == "80000000"


def test_generate_hash_uses_utf16_code_units():
    # U+1F600 is the surrogate pair D83D DE00
    assert generate_hash("\U0001F600") == "001b0d63"


def test_generate_hash_collisions_are_trivial():
    assert generate_hash("Aa") == generate_hash("BB")


def test_block_hash_is_sixteen_chars():
    assert generate_block_hash("ab") == "0000000000000c21"


def test_sha256_hex_matches_hashlib():
    data = "Acme Pharma Ltd"
    assert sha256_hex(data) == hashlib.sha256(data.encode()).hexdigest()


def test_compact_json_matches_javascript_rendering():
    assert compact_json({"t": 22.0, "h": 45.5, "n": None, "ok": True}) == \
        '{"t":22,"h":45.5,"n":null,"ok":true}'
    assert compact_json({"note": "café"}) == '{"note":"café"}'


def test_event_json_preserves_field_order():
    payload = event_json("PROD_0001", 1700000000000, "Factory", "manufactured",
                         "TechCorp", "manufacturer", {"temperature": 22, "stockChange": 100})
    assert payload == (
        '{"productId":"PROD_0001","timestamp":1700000000000,"location":"Factory",'
        '"status":"manufactured","stakeholder":"TechCorp","stakeholderType":"manufacturer",'
        '"temperature":22,"stockChange":100}'
    )


def test_event_json_colliding_key_keeps_base_position():
    payload = event_json("P", 1, "L", "manufactured", "S", "manufacturer", {"location": "X"})
    assert payload.startswith('{"productId":"P","timestamp":1,"location":"X","status"')


def test_stable_stringify_ignores_key_order():
    assert stable_stringify({"a": 1, "b": 2}) == stable_stringify({"b": 2, "a": 1})
    assert stable_stringify({"b": 2, "a": 1}) == '{"a":1,"b":2}'


def test_stable_stringify_sorts_nested_and_keeps_array_order():
    obj = {"z": [3, 1, {"y": 1, "x": 2}], "a": {"d": None, "c": "s"}}
    assert stable_stringify(obj) == '{"a":{"c":"s","d":null},"z":[3,1,{"x":2,"y":1}]}'


def test_two_serialisations_differ_on_reordered_fields():
    first = {"a": 1, "b": 2}
    second = {"b": 2, "a": 1}
    assert stable_stringify(first) == stable_stringify(second)
    assert compact_json(first) != compact_json(second)

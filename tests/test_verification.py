"""
Unit tests for certificate and claim verification against the trust registry.
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json

import pytest

from tracker.app.extraction import extract_claims_from_text
from tracker.app.hashing import sha256_hex, stable_stringify
from tracker.app.registry import DEFAULT_REGISTRY, TrustRegistry, load_registry
from tracker.app.schemas import ClaimRecord, VerificationStatus
from tracker.app.verification import (
    ClaimFormatError, build_certificate, parse_claim_json, verify_certificate,
    verify_claims, verify_claims_detailed,
)

GOOD = {"issuer": "Acme Pharma Ltd", "productId": "PC-100",
        "batchNumber": "BATCH-9999", "issueDate": "2024-01-01"}


def test_all_fields_registered_is_verified():
    result = verify_certificate(GOOD, DEFAULT_REGISTRY)
    assert result.status == VerificationStatus.VERIFIED
    assert result.reasons == ["All checks passed"]


def test_unknown_issuer_is_fake_regardless_of_other_fields():
    result = verify_certificate(dict(GOOD, issuer="Evil Corp"), DEFAULT_REGISTRY)
    assert result.status == VerificationStatus.FAKE
    assert result.reasons == ["Issuer not found on chain"]


def test_empty_issuer_is_fake():
    assert verify_certificate(dict(GOOD, issuer="  "), DEFAULT_REGISTRY).status == VerificationStatus.FAKE


def test_issuer_match_ignores_case():
    result = verify_certificate(dict(GOOD, issuer="ACME PHARMA LTD"), DEFAULT_REGISTRY)
    assert result.status == VerificationStatus.VERIFIED


def test_missing_product_is_partially_verified():
    result = verify_certificate(dict(GOOD, productId=""), DEFAULT_REGISTRY)
    assert result.status == VerificationStatus.PARTIALLY_VERIFIED
    assert result.reasons == ["Product ID missing"]


def test_unregistered_fields_collect_every_reason():
    cert = dict(GOOD, productId="PC-999", batchNumber="", issueDate="2023-06-30")
    result = verify_certificate(cert, DEFAULT_REGISTRY)
    assert result.status == VerificationStatus.PARTIALLY_VERIFIED
    assert result.reasons == ["Product ID not registered", "Batch number missing",
                              "Issue date not registered"]


def test_near_miss_batch_is_not_registered():
    result = verify_certificate(dict(GOOD, batchNumber="batch-9999"), DEFAULT_REGISTRY)
    assert result.reasons == ["Batch number not registered"]


def test_verify_claims_accepts_alternate_keys():
    claim = {"issuer": "acme pharma ltd", "product_or_document": "PC-200",
             "batch": "batch 9999", "issued_date": "2024-01-01"}
    cert = build_certificate(ClaimRecord.model_validate(claim))
    assert cert.product_id == "PC-200"
    assert cert.batch_number == "BATCH-9999"
    assert verify_claims(claim, DEFAULT_REGISTRY).status == VerificationStatus.VERIFIED


def test_empty_primary_key_falls_through_to_alternate():
    record = parse_claim_json(json.dumps({
        "issuer": "Acme Pharma Ltd", "productId": "", "product_id": "PC-100",
        "batchNumber": "", "batch": "BATCH-9999",
        "issueDate": None, "issue_date": "2024-01-01", "claims": [],
    }))
    assert record.product_id == "PC-100"
    assert record.batch_number == "BATCH-9999"
    assert record.issue_date == "2024-01-01"
    assert verify_claims(record, DEFAULT_REGISTRY).status == VerificationStatus.VERIFIED


def test_first_filled_alternate_key_wins():
    record = ClaimRecord.model_validate({"batchNumber": "BATCH-1", "batch": "BATCH-2"})
    assert record.batch_number == "BATCH-1"
    assert record.model_dump(by_alias=True)["batchNumber"] == "BATCH-1"


def test_all_alternates_empty_stays_empty():
    record = ClaimRecord.model_validate({"batchNumber": "", "batch": None})
    assert record.batch_number == ""


def test_none_issuer_is_fake_not_an_error():
    result = verify_certificate({"issuer": None}, DEFAULT_REGISTRY)
    assert result.status == VerificationStatus.FAKE
    assert result.reasons == ["Issuer not found on chain"]


def test_none_product_id_is_missing():
    result = verify_certificate(dict(GOOD, productId=None), DEFAULT_REGISTRY)
    assert result.status == VerificationStatus.PARTIALLY_VERIFIED
    assert result.reasons == ["Product ID missing"]


def test_verify_claims_scans_free_text_claims():
    claim = {"issuer": "Acme Pharma Ltd",
             "claims": ["Product ID: PC-100 confirmed", "Lot BATCH 9999", "Issued 2024-01-01"]}
    assert verify_claims(claim, DEFAULT_REGISTRY).status == VerificationStatus.VERIFIED


def test_verify_claims_from_extracted_certificate():
    record = extract_claims_from_text(
        "Issuer: Acme Pharma Ltd\nProduct ID: PC-100\nBatch Number: BATCH-9999\nIssue Date: 2024-01-01")
    assert verify_claims(record, DEFAULT_REGISTRY).status == VerificationStatus.VERIFIED


def test_detailed_rows_for_certificate():
    record = extract_claims_from_text(
        "Issuer: Acme Pharma Ltd\nProduct ID: PC-100\nBatch Number: BATCH-9999\n"
        "Issue Date: 2024-01-01\n- This product meets GMP standards.")
    rows = verify_claims_detailed(record, DEFAULT_REGISTRY)

    assert [r.type for r in rows] == ["meta", "claim", "claim", "claim", "claim"]
    meta, product, batch, date, text = rows
    assert meta.label == "Issuer: Acme Pharma Ltd"
    assert meta.hash == sha256_hex(stable_stringify(record.model_dump(by_alias=True)))
    assert product.label == "Product ID: PC-100"
    assert product.hash == sha256_hex('{"product":"PC-100"}')
    assert product.details == "Product recognized"
    assert batch.label == "Batch: BATCH-9999"
    assert batch.hash == sha256_hex('{"batch":"BATCH-9999"}')
    assert date.label == "Issued date: 2024-01-01"
    assert all(r.status == VerificationStatus.VERIFIED for r in rows[:4])
    assert text.label == "This product meets GMP standards."
    assert text.status == VerificationStatus.PARTIALLY_VERIFIED
    assert text.details == "Textual claim - not verifiable on-chain"
    assert text.hash == sha256_hex('{"claim":"This product meets GMP standards."}')


def test_detailed_rows_skip_pseudo_claims():
    claim = {"issuer": "Acme Pharma Ltd",
             "claims": ["Product ID: PC-100 confirmed", "Lot BATCH 9999", "Issued 2024-01-01"]}
    rows = verify_claims_detailed(claim, DEFAULT_REGISTRY)
    assert len(rows) == 6
    assert [r.label for r in rows[4:]] == ["Lot BATCH 9999", "Issued 2024-01-01"]


def test_detailed_rows_unknown_issuer_and_product():
    rows = verify_claims_detailed({"issuer": "", "productId": "PC-777"}, DEFAULT_REGISTRY)
    assert rows[0].label == "Issuer: Unknown"
    assert rows[0].status == VerificationStatus.FAKE
    assert rows[1].status == VerificationStatus.FAKE
    assert rows[1].details == "Product not recognized"


def test_meta_hash_ignores_key_order():
    a = {"issuer": "Acme Pharma Ltd", "productId": "PC-100", "claims": ["x"]}
    b = {"claims": ["x"], "productId": "PC-100", "issuer": "Acme Pharma Ltd"}
    assert verify_claims_detailed(a, DEFAULT_REGISTRY)[0].hash == \
        verify_claims_detailed(b, DEFAULT_REGISTRY)[0].hash


def test_free_text_claims_never_verified():
    rows = verify_claims_detailed(dict(GOOD, claims=["Meets ISO 9001", "Is organic"]),
                                  DEFAULT_REGISTRY)
    free = [r for r in rows if r.label in ("Meets ISO 9001", "Is organic")]
    assert len(free) == 2
    assert all(r.status == VerificationStatus.PARTIALLY_VERIFIED for r in free)


def test_parse_claim_json_rejects_malformed_input():
    with pytest.raises(ClaimFormatError):
        parse_claim_json("{not json")
    with pytest.raises(ClaimFormatError):
        parse_claim_json("[1, 2]")


def test_parse_claim_json_is_a_value_error():
    with pytest.raises(ValueError):
        parse_claim_json("")


def test_parse_claim_json_coerces_values():
    record = parse_claim_json(json.dumps({"issuer": None, "batch_number": 9999,
                                          "claims": "not a list"}))
    assert record.issuer == ""
    assert record.batch_number == "9999"
    assert record.claims == []


def test_custom_registry(tmp_path):
    path = tmp_path / "registry.json"
    path.write_text(json.dumps({"issuers": ["Widget Works"], "productIds": ["PC-1"],
                                "batches": ["B-1"], "issueDates": ["2025-02-02"]}))
    registry = load_registry(str(path))
    cert = {"issuer": "Widget Works", "productId": "PC-1",
            "batchNumber": "B-1", "issueDate": "2025-02-02"}
    assert verify_certificate(cert, registry).status == VerificationStatus.VERIFIED
    assert verify_certificate(GOOD, registry).status == VerificationStatus.FAKE


def test_empty_registry_rejects_everything():
    assert verify_certificate(GOOD, TrustRegistry()).status == VerificationStatus.FAKE

"""
verification.py - Claim and certificate verification against a trust registry.

Verdicts are one of Verified, Partially Verified, Fake, recomputed from
scratch on every call:

  verify_certificate()      - aggregate verdict for the four registry fields.
                              An unknown issuer is a hard gate (Fake); any
                              other missing or unregistered field downgrades to
                              Partially Verified.
  verify_claims()           - same verdict, starting from a ClaimRecord.
  verify_claims_detailed()  - one row per recognised field plus one row per
                              free-text claim, each with its own SHA-256 hash.

Free-text claims are never fully verifiable and are always reported as
Partially Verified.

Hashing: the meta row carries the digest of the whole record under
stable_stringify (key-sorted). Per-field rows hash a one-key object with plain
compact JSON. These two serialisations are intentionally different.
"""
import json
import logging
import re
from typing import Any, Optional, Union

from .hashing import compact_json, sha256_hex, stable_stringify
from .registry import TrustRegistry
from .schemas import (
    CertificateFields, ClaimCheck, ClaimRecord,
    VerificationResult, VerificationStatus,
)

log = logging.getLogger("tracker.verification")

_PC_ANY = re.compile(r"PC-\w+", re.I)
_PC_CODE = re.compile(r"PC-[A-Z0-9\-]+", re.I)
_PRODUCT_ID_LABEL = re.compile(r"product id[:\-]?\s*([A-Z0-9\-]+)", re.I)
_BATCH_CODE = re.compile(r"(BATCH[-\s]?[A-Z0-9]+)", re.I)
_BATCH_LABEL = re.compile(r"batch number[:\-]?\s*([A-Z0-9\-]+)", re.I)
_ISO_DATE = re.compile(r"\d{4}[-/]\d{1,2}[-/]\d{1,2}")
_PSEUDO_BATCH = re.compile(r"^Batch[: ]", re.I)
_PSEUDO_PRODUCT = re.compile(r"Product ID[: ]", re.I)
_WS = re.compile(r"\s+")

ClaimInput = Union[ClaimRecord, dict]


class ClaimFormatError(ValueError):
    """Claim JSON could not be evaluated. Distinct from a Fake verdict."""


def parse_claim_json(text: str) -> ClaimRecord:
    """Re-hydrate an (edited) claim record from JSON text."""
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ClaimFormatError(f"invalid claim JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ClaimFormatError("claim JSON must be an object")
    return ClaimRecord.model_validate(raw)


def as_claim_record(claim_data: ClaimInput) -> ClaimRecord:
    if isinstance(claim_data, ClaimRecord):
        return claim_data
    return ClaimRecord.model_validate(claim_data)


#  Field helpers

def extract_product_id(claim: ClaimRecord) -> Optional[str]:
    for candidate in (claim.product_or_document or claim.product_id, claim.product_id):
        if candidate and _PC_ANY.search(candidate):
            m = _PC_CODE.search(candidate)
            if m:
                return m.group(0).upper()
    for c in claim.claims:
        m = _PC_CODE.search(c)
        if m:
            return m.group(0).upper()
        m = _PRODUCT_ID_LABEL.search(c)
        if m:
            return m.group(1).upper()
    return None


def extract_batch_number(claim: ClaimRecord) -> Optional[str]:
    if claim.batch_number.strip():
        return _WS.sub("-", claim.batch_number.strip()).upper()
    for c in claim.claims:
        m = _BATCH_CODE.search(c)
        if m:
            return _WS.sub("-", m.group(1)).upper()
        m = _BATCH_LABEL.search(c)
        if m:
            return m.group(1).upper()
    return None


def extract_issue_date(claim: ClaimRecord) -> Optional[str]:
    d = claim.issued_date or claim.issue_date
    if d:
        m = _ISO_DATE.search(d)
        if m:
            return m.group(0)
    for c in claim.claims:
        m = _ISO_DATE.search(c)
        if m:
            return m.group(0)
    return None


def build_certificate(claim: ClaimRecord) -> CertificateFields:
    return CertificateFields(
        issuer=claim.issuer.strip(),
        product_id=extract_product_id(claim) or "",
        batch_number=extract_batch_number(claim) or "",
        issue_date=extract_issue_date(claim) or "",
    )


#  Verdicts

def _check(present: str, registered: bool, label: str, reasons: list[str]) -> None:
    if not present:
        reasons.append(f"{label} missing")
    elif not registered:
        reasons.append(f"{label} not registered")


def verify_certificate(certificate: Union[CertificateFields, dict],
                       registry: TrustRegistry) -> VerificationResult:
    if isinstance(certificate, dict):
        certificate = CertificateFields.model_validate(certificate)

    issuer = certificate.issuer.strip()
    if not registry.has_issuer(issuer):
        return VerificationResult(status=VerificationStatus.FAKE,
                                  reasons=["Issuer not found on chain"])

    reasons: list[str] = []
    _check(certificate.product_id, registry.has_product(certificate.product_id),
           "Product ID", reasons)
    _check(certificate.batch_number, registry.has_batch(certificate.batch_number),
           "Batch number", reasons)
    _check(certificate.issue_date, registry.has_issue_date(certificate.issue_date),
           "Issue date", reasons)

    if not reasons:
        return VerificationResult(status=VerificationStatus.VERIFIED,
                                  reasons=["All checks passed"])
    return VerificationResult(status=VerificationStatus.PARTIALLY_VERIFIED, reasons=reasons)


def verify_claims(claim_data: ClaimInput, registry: TrustRegistry) -> VerificationResult:
    return verify_certificate(build_certificate(as_claim_record(claim_data)), registry)


def _row_hash(obj: dict[str, Any]) -> str:
    return sha256_hex(compact_json(obj))


def _field_row(label: str, value: str, key: str, ok: bool, noun: str) -> ClaimCheck:
    return ClaimCheck(
        type="claim",
        label=f"{label}: {value}",
        hash=_row_hash({key: value}),
        status=VerificationStatus.VERIFIED if ok else VerificationStatus.FAKE,
        details=f"{noun} recognized" if ok else f"{noun} not recognized",
    )


def verify_claims_detailed(claim_data: ClaimInput, registry: TrustRegistry) -> list[ClaimCheck]:
    claim = as_claim_record(claim_data)
    full_hash = sha256_hex(stable_stringify(claim.model_dump(by_alias=True)))

    issuer = claim.issuer.strip()
    issuer_ok = registry.has_issuer(issuer)
    rows = [ClaimCheck(
        type="meta",
        label=f"Issuer: {issuer or 'Unknown'}",
        hash=full_hash,
        status=VerificationStatus.VERIFIED if issuer_ok else VerificationStatus.FAKE,
        details="Issuer recognized" if issuer_ok else "Issuer not recognized",
    )]

    product_id = extract_product_id(claim)
    if product_id:
        rows.append(_field_row("Product ID", product_id, "product",
                               registry.has_product(product_id), "Product"))

    batch = extract_batch_number(claim)
    if batch:
        rows.append(_field_row("Batch", batch, "batch", registry.has_batch(batch), "Batch"))

    date = extract_issue_date(claim)
    if date:
        rows.append(_field_row("Issued date", date, "date",
                               registry.has_issue_date(date), "Date"))

    for c in claim.claims:
        if _PSEUDO_BATCH.search(c) or _PSEUDO_PRODUCT.search(c):
            continue
        rows.append(ClaimCheck(
            type="claim",
            label=c,
            hash=_row_hash({"claim": c}),
            status=VerificationStatus.PARTIALLY_VERIFIED,
            details="Textual claim - not verifiable on-chain",
        ))

    log.debug("claim rows=%d issuer_ok=%s", len(rows), issuer_ok)
    return rows

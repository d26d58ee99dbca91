"""
extraction.py - Free-text certificate parsing and claim extraction.

parse_certificate_text() pulls the four registry fields (issuer, product id,
batch number, issue date) out of label-prefixed lines.

extract_claims_from_text() builds a full ClaimRecord: the certificate fields,
supplementary metadata patterns, and the remaining sentence-like lines as
free-text claims. It never raises; unparseable input degrades to a mostly
empty record.

Extraction is pluggable: RegexClaimExtractor is always available,
LLMClaimExtractor tries a text-generation backend first and falls back to the
regex extractor on any failure.
"""
import json
import logging
import re
from datetime import datetime
from typing import Optional, Protocol

import requests
from pydantic import ValidationError

from .config import Settings
from .llm import LLMClient, LLMUnavailable
from .schemas import CertificateFields, ClaimRecord

log = logging.getLogger("tracker.extraction")

_ISSUER_LINE = re.compile(
    r"^(?:issuer|issued by|issued-by|manufacturer|manufactured by)[:\-]?\s*(.+)$", re.I)
_PRODUCT_LINE = re.compile(
    r"^(?:product id|product name|product|document)[:\-]?\s*([A-Z0-9][A-Z0-9\-\s]*)$", re.I)
_PC_CODE = re.compile(r"(PC-[A-Z0-9\-]+)", re.I)
_BATCH_LINE = re.compile(r"^(?:batch number|batch no\.?|batch)[:\-]?\s*([A-Z0-9\-\s]+)", re.I)
_DATE_LINE = re.compile(
    r"^(?:issue date|issued date|manufacture date|manufactured on|date)[:\-]?\s*(.+)$", re.I)
ISO_DATE = re.compile(r"(\d{4}[-/]\d{1,2}[-/]\d{1,2})")

# Supplementary whole-text passes. The separator after the label is mandatory here.
_META_ISSUER = re.compile(r"(?:manufactured by|manufacturer|issuer|issued by)[:\-]\s*(.+)", re.I)
_META_PRODUCT = re.compile(r"(?:product id|product name|product|document)[:\-]\s*(.+)", re.I)
_META_DATE = re.compile(
    r"(?:manufacture date|manufactured on|issued date|date)[:\-]\s*"
    r"([0-9]{4}[-/.][0-9]{1,2}[-/.][0-9]{1,2}|[0-9]{1,2}[-/.][0-9]{1,2}[-/.][0-9]{2,4})",
    re.I,
)
_META_BATCH = re.compile(r"(?:batch number|batch no\.?|batch)[:\-]\s*(\S+)", re.I)

_METADATA_LABEL = re.compile(
    r"(manufactured by|manufacturer|issuer|issued by|product id|product name|product|document"
    r"|manufacture date|manufactured on|issued date|date|batch number|batch no\.?|batch)[:\-]",
    re.I,
)
_ASSERTIVE = re.compile(
    r"\bis\b|\bhas\b|\bprovides\b|\bincludes\b|\bcontains\b|\bguarantee|\bmeets\b|\bcomplies\b",
    re.I,
)
_BULLET = re.compile(r"^[-\d.)\s]+")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_WS = re.compile(r"\s+")

MAX_FALLBACK_SENTENCES = 6
MIN_CLAIM_LENGTH = 20

# Layouts tried when a labelled date is not ISO-like.
_LOOSE_DATE_FORMATS = (
    "%B %d, %Y", "%B %d %Y", "%b %d, %Y", "%b %d %Y",
    "%d %B %Y", "%d %b %Y", "%A, %B %d, %Y",
    "%m/%d/%Y", "%m-%d-%Y", "%m.%d.%Y", "%Y.%m.%d",
    "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%SZ",
)


def normalize_text(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\t", " ").strip()


def _lines(text: str) -> list[str]:
    return [line.strip() for line in re.split(r"\n+", text) if line.strip()]


def parse_loose_date(value: str) -> Optional[str]:
    """Return value reformatted as YYYY-MM-DD, or None when no layout matches."""
    for fmt in _LOOSE_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def _labelled_date(value: str) -> str:
    iso = ISO_DATE.search(value)
    if iso:
        return iso.group(1)
    return parse_loose_date(value) or value


def parse_certificate_text(text: str) -> CertificateFields:
    """Scan lines for issuer, product id, batch number and issue date.

    First match wins per field; the scan stops once all four are filled.
    """
    if not text:
        return CertificateFields()

    issuer = product_id = batch_number = issue_date = ""
    for line in _lines(normalize_text(text)):
        if not issuer:
            m = _ISSUER_LINE.match(line)
            if m:
                issuer = m.group(1).strip()

        if not product_id:
            m = _PRODUCT_LINE.match(line)
            if m:
                product_id = _WS.sub("-", m.group(1).strip())
            else:
                p = _PC_CODE.search(line)
                if p:
                    product_id = p.group(1).upper()

        if not batch_number:
            m = _BATCH_LINE.match(line)
            if m:
                batch_number = _WS.sub("-", m.group(1).strip()).upper()

        if not issue_date:
            m = _DATE_LINE.match(line)
            if m:
                issue_date = _labelled_date(m.group(1).strip())
            else:
                bare = ISO_DATE.search(line)
                if bare:
                    issue_date = bare.group(1)

        if issuer and product_id and batch_number and issue_date:
            break

    return CertificateFields(issuer=issuer, product_id=product_id,
                             batch_number=batch_number, issue_date=issue_date)


def _claim_candidates(lines: list[str]) -> list[str]:
    candidates = []
    for line in lines:
        if _METADATA_LABEL.search(line):
            continue
        if _ASSERTIVE.search(line) or len(line) > MIN_CLAIM_LENGTH:
            candidates.append(_BULLET.sub("", line).strip())
    return candidates


def extract_claims_from_text(text: str) -> ClaimRecord:
    """Deterministic extraction of a ClaimRecord from free text."""
    record = ClaimRecord()
    if not text or not text.strip():
        return record

    normalized = normalize_text(text)

    cert = parse_certificate_text(normalized)
    record.issuer = cert.issuer
    record.product_or_document = cert.product_id
    record.product_id = cert.product_id
    record.batch_number = cert.batch_number
    record.issue_date = cert.issue_date

    pseudo_claims: list[str] = []
    m = _META_ISSUER.search(normalized)
    if m and not record.issuer:
        record.issuer = m.group(1).strip()
    m = _META_PRODUCT.search(normalized)
    if m and not record.product_or_document:
        record.product_or_document = m.group(1).strip()
    m = _META_DATE.search(normalized)
    if m and not record.issued_date:
        record.issued_date = m.group(1).strip()
    m = _META_BATCH.search(normalized)
    if m:
        pseudo_claims.append(f"Batch: {m.group(1).strip()}")

    candidates = _claim_candidates(_lines(normalized))
    if not candidates:
        sentences = [s.strip() for s in _SENTENCE_END.split(normalized) if s.strip()]
        candidates = sentences[:MAX_FALLBACK_SENTENCES]

    record.claims = pseudo_claims + [_WS.sub(" ", c).strip() for c in candidates]
    return record


#  Extractor strategies

class ClaimExtractor(Protocol):
    name: str

    def extract(self, text: str) -> ClaimRecord:
        ...


class RegexClaimExtractor:
    name = "regex"

    def extract(self, text: str) -> ClaimRecord:
        return extract_claims_from_text(text)


_JSON_OBJECT = re.compile(r"\{.*\}", re.S)

EXTRACTION_PROMPT = (
    "Extract structured data from the document below. Reply with a single JSON object "
    "with the keys issuer, product_or_document, productId, batchNumber, issueDate, "
    "issued_date (strings, empty when absent) and claims (list of sentences asserted "
    "by the document).\n\nDocument:\n{text}"
)


class LLMClaimExtractor:
    """Backend extraction with the deterministic extractor as a closed fallback."""
    name = "llm"

    def __init__(self, client: LLMClient, fallback: Optional[ClaimExtractor] = None):
        self._client = client
        self._fallback = fallback or RegexClaimExtractor()

    def extract(self, text: str) -> ClaimRecord:
        if not text or not text.strip():
            return ClaimRecord()
        try:
            reply = self._client.complete(EXTRACTION_PROMPT.format(text=normalize_text(text)))
            m = _JSON_OBJECT.search(reply)
            if not m:
                raise LLMUnavailable("no JSON object in LLM reply")
            return ClaimRecord.model_validate(json.loads(m.group(0)))
        except (LLMUnavailable, requests.RequestException, ValueError, ValidationError) as exc:
            log.warning("LLM extraction failed, using %s extractor: %s", self._fallback.name, exc)
            return self._fallback.extract(text)


def get_extractor(settings: Settings) -> ClaimExtractor:
    if settings.llm_configured:
        return LLMClaimExtractor(LLMClient.from_settings(settings))
    return RegexClaimExtractor()

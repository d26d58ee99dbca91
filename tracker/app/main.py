"""
main.py - Supply chain tracker REST API.

Serves the per-product event chains and the certificate claim checks.
  scan form -> POST /products/{id}/events -> chain to last hash -> JSON store
  certificate text -> POST /claims/extract -> POST /claims/verify -> verdict rows

Run with: uvicorn tracker.app.main:app --host 0.0.0.0 --port 8000
"""
import logging
import os
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .analytics import stakeholder_directory, summarize
from .assistant import explain_verdict
from .authentication import AuthenticationResult, authenticate_product
from .chain import build_block_log, find_broken_link, search_blocks
from .config import get_settings
from .extraction import ClaimExtractor, get_extractor, parse_certificate_text
from .llm import LLMClient
from .qr import qr_png
from .registry import TrustRegistry, load_registry
from .schemas import (
    Block, CertificateVerifyResponse, ChainVerifyResponse, ClaimRecord,
    ExplainRequest, Explanation, ExtractRequest, NewEventRequest,
    NewProductRequest, Product, SupplyChainEvent, VerifyClaimsRequest,
    VerifyClaimsResponse,
)
from .store import ProductStore, get_store
from .verification import (
    ClaimFormatError, parse_claim_json, verify_certificate,
    verify_claims, verify_claims_detailed,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("tracker.api")

settings = get_settings()
_registry: TrustRegistry = load_registry(settings.registry_file)
_extractor: ClaimExtractor = get_extractor(settings)
_llm = LLMClient.from_settings(settings)

app = FastAPI(
    title="Supply Chain Provenance Tracker",
    description=(
        "Per-product custody event chains with tamper detection, and "
        "certificate claim extraction verified against a trust registry.\n\n"
        "Event hashes use a 32-bit rolling checksum kept for compatibility; "
        "it is tamper-evident only against accidental edits, not adversaries."
    ),
    version="1.0.0",
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def get_registry() -> TrustRegistry:
    return _registry


def get_claim_extractor() -> ClaimExtractor:
    return _extractor


def get_llm() -> LLMClient:
    return _llm


def _product_or_404(store: ProductStore, product_id: str) -> Product:
    try:
        return store.get(product_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


# System endpoints

@app.get("/health", tags=["system"])
def health(store: ProductStore = Depends(get_store),
           extractor: ClaimExtractor = Depends(get_claim_extractor)):
    return {
        "status": "ok",
        "products": len(store.list_products()),
        "extractor": extractor.name,
        "block_size": settings.block_size,
    }


@app.get("/registry", tags=["system"])
def registry(reg: TrustRegistry = Depends(get_registry)):
    return reg.as_dict()


@app.get("/stats", tags=["system"])
def stats(store: ProductStore = Depends(get_store)):
    return asdict(summarize(store.list_products()))


@app.get("/stakeholders", tags=["system"])
def stakeholders(store: ProductStore = Depends(get_store)):
    return [asdict(s) for s in stakeholder_directory(store.list_products())]


# Products and event chains

@app.get("/products", tags=["products"])
def list_products(store: ProductStore = Depends(get_store)):
    return [p.model_dump(mode="json", by_alias=True) for p in store.list_products()]


@app.post("/products", tags=["products"], status_code=201)
def add_product(body: NewProductRequest, store: ProductStore = Depends(get_store)):
    return store.add(body).model_dump(mode="json", by_alias=True)


@app.get("/products/{product_id}", tags=["products"])
def get_product(product_id: str, store: ProductStore = Depends(get_store)):
    return _product_or_404(store, product_id).model_dump(mode="json", by_alias=True)


@app.post("/products/{product_id}/events", tags=["products"], status_code=201)
def record_event(product_id: str, body: NewEventRequest,
                 store: ProductStore = Depends(get_store)):
    """Record a custody checkpoint (the QR-scan form).

    The new event is chained to the hash of the product's last event.
    Status transitions are not validated.
    """
    try:
        event: SupplyChainEvent = store.record_event(product_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return event.model_dump(mode="json", by_alias=True)


@app.get("/products/{product_id}/verify", tags=["integrity"])
def verify_product_chain(product_id: str, store: ProductStore = Depends(get_store)):
    """Recompute every link and hash of the product's event chain.

    brokenAt is the index of the first event that fails, when any does.
    """
    product = _product_or_404(store, product_id)
    broken = find_broken_link(product.events)
    if broken is not None:
        log.warning("tamper detected product_id=%s index=%d", product_id, broken)
    return ChainVerifyResponse(
        product_id=product.id,
        event_count=len(product.events),
        intact=broken is None,
        broken_at=broken,
    ).model_dump(by_alias=True)


@app.get("/products/{product_id}/authenticate", tags=["integrity"],
         response_model=AuthenticationResult)
def authenticate(product_id: str, store: ProductStore = Depends(get_store)):
    return authenticate_product(_product_or_404(store, product_id))


@app.get("/products/{product_id}/qr", tags=["products"],
         response_class=Response)
def product_qr(product_id: str, store: ProductStore = Depends(get_store)):
    product = _product_or_404(store, product_id)
    return Response(content=qr_png(product.id), media_type="image/png")


@app.get("/ledger/blocks", tags=["integrity"])
def ledger_blocks(
    q: Optional[str] = Query(default=None, description="Filter by hash, product, stakeholder or location"),
    block_size: Optional[int] = Query(default=None, ge=1, le=100),
    store: ProductStore = Depends(get_store),
):
    """Display grouping of all events into hash-linked blocks. Presentation only."""
    blocks: list[Block] = build_block_log(store.list_products(), block_size or settings.block_size)
    overall = all(b.is_valid for b in blocks)
    if q:
        blocks = search_blocks(blocks, q)
    return {
        "overallIntegrity": overall,
        "blocks": [b.model_dump(mode="json", by_alias=True) for b in blocks],
    }


# Claims and certificates

@app.post("/claims/extract", tags=["claims"])
def extract_claims(body: ExtractRequest,
                   extractor: ClaimExtractor = Depends(get_claim_extractor)):
    record: ClaimRecord = extractor.extract(body.text)
    log.info("extracted claims=%d extractor=%s", len(record.claims), extractor.name)
    return record.model_dump(by_alias=True)


@app.post("/claims/verify", tags=["claims"], response_model=VerifyClaimsResponse)
def verify_claim_json(body: VerifyClaimsRequest,
                      reg: TrustRegistry = Depends(get_registry)):
    """Verify an extracted (and possibly hand-edited) claim record.

    Unparseable JSON is a 422 input error, never a Fake verdict.
    """
    try:
        claim = parse_claim_json(body.claim_json)
    except ClaimFormatError as exc:
        raise HTTPException(status_code=422, detail={"error": "invalid_claim_json", "message": str(exc)})

    checks = verify_claims_detailed(claim, reg)
    verdict = verify_claims(claim, reg)
    log.info("claims verified status=%s rows=%d", verdict.status.value, len(checks))
    return VerifyClaimsResponse(verdict=verdict, checks=checks)


@app.post("/claims/explain", tags=["claims"], response_model=Explanation)
def explain(body: ExplainRequest, llm: LLMClient = Depends(get_llm)):
    return explain_verdict(body.status, body.reasons, llm)


@app.post("/certificates/verify", tags=["claims"], response_model=CertificateVerifyResponse)
def verify_certificate_text(body: ExtractRequest, reg: TrustRegistry = Depends(get_registry)):
    fields = parse_certificate_text(body.text)
    verdict = verify_certificate(fields, reg)
    log.info("certificate verified issuer=%r status=%s", fields.issuer, verdict.status.value)
    return CertificateVerifyResponse(certificate=fields, verdict=verdict)

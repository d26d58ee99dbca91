"""
Product authenticity scoring.

Starts at 100 confidence and deducts per failed check:

  Chain integrity           -40
  Manufacturing origin      -30
  Chain continuity          -20 (fewer than 2 events) / -10 (gap > 30 days)
  Product information       -15
  Stakeholder count (>= 2)  -10
  Expiry date               -5  (only when an expiry date is set)

A product is authentic when confidence >= 70 and it is not flagged as a
suspected counterfeit. Flagged products are capped at 30.
"""
from datetime import date
from typing import Optional

from pydantic import BaseModel

from .chain import verify_blockchain_integrity
from .schemas import EventStatus, Product

MAX_GAP_MS = 30 * 24 * 60 * 60 * 1000
AUTHENTIC_THRESHOLD = 70
FLAGGED_CAP = 30


class VerificationStep(BaseModel):
    step: str
    status: str  # passed | warning | failed
    details: str


class AuthenticationResult(BaseModel):
    product_id: str
    is_authentic: bool
    confidence: int
    reasons: list[str]
    risk_factors: list[str]
    verification_steps: list[VerificationStep]


def authenticate_product(product: Product, today: Optional[date] = None) -> AuthenticationResult:
    today = today or date.today()
    steps: list[VerificationStep] = []
    reasons: list[str] = []
    risks: list[str] = []
    confidence = 100

    chain_ok = verify_blockchain_integrity(product.events)
    steps.append(VerificationStep(
        step="Blockchain Integrity",
        status="passed" if chain_ok else "failed",
        details="All transaction hashes verified successfully" if chain_ok
        else "Blockchain integrity compromised - potential tampering detected",
    ))
    if chain_ok:
        reasons.append("Blockchain verified and tamper-evident")
    else:
        confidence -= 40
        risks.append("Blockchain integrity compromised")

    has_origin = any(e.status == EventStatus.MANUFACTURED for e in product.events)
    steps.append(VerificationStep(
        step="Manufacturing Origin",
        status="passed" if has_origin else "failed",
        details=f"Verified manufacturing by {product.manufacturer}" if has_origin
        else "No manufacturing record found",
    ))
    if has_origin:
        reasons.append("Valid manufacturing origin verified")
    else:
        confidence -= 30
        risks.append("Missing manufacturing record")

    complete = len(product.events) >= 2
    gaps = any(
        product.events[i].timestamp - product.events[i - 1].timestamp > MAX_GAP_MS
        for i in range(1, len(product.events))
    )
    if complete and not gaps:
        status, details = "passed", "Complete and continuous supply chain tracking"
    elif gaps:
        status = "warning"
        details = ("Supply chain has some gaps but is traceable" if complete
                   else "Insufficient supply chain data")
    else:
        status, details = "failed", "Insufficient supply chain data"
    steps.append(VerificationStep(step="Supply Chain Continuity", status=status, details=details))
    if not complete:
        confidence -= 20
        risks.append("Incomplete supply chain data")
    elif gaps:
        confidence -= 10
        risks.append("Supply chain gaps detected")
    else:
        reasons.append("Complete supply chain traceability")

    info_ok = bool(product.batch_number and product.manufacturing_date and product.manufacturer)
    steps.append(VerificationStep(
        step="Product Information",
        status="passed" if info_ok else "warning",
        details="All product information fields are complete" if info_ok
        else "Some product information is missing",
    ))
    if info_ok:
        reasons.append("Complete product documentation")
    else:
        confidence -= 15
        risks.append("Incomplete product information")

    stakeholders = len({e.stakeholder for e in product.events})
    steps.append(VerificationStep(
        step="Stakeholder Verification",
        status="passed" if stakeholders >= 2 else "warning",
        details=f"{stakeholders} unique stakeholders involved in supply chain",
    ))
    if stakeholders >= 2:
        reasons.append("Multiple verified stakeholders")
    else:
        confidence -= 10
        risks.append("Limited stakeholder involvement")

    if product.expiry_date:
        try:
            expired = date.fromisoformat(product.expiry_date) < today
        except ValueError:
            expired = False
        steps.append(VerificationStep(
            step="Expiry Date Check",
            status="warning" if expired else "passed",
            details=f"Product expired on {product.expiry_date}" if expired
            else f"Product valid until {product.expiry_date}",
        ))
        if expired:
            confidence -= 5
            risks.append("Product has expired")
        else:
            reasons.append("Product within expiry date")

    is_authentic = confidence >= AUTHENTIC_THRESHOLD and product.authenticity
    if not product.authenticity:
        confidence = min(confidence, FLAGGED_CAP)
        risks.append("Product flagged as potentially counterfeit")

    return AuthenticationResult(
        product_id=product.id,
        is_authentic=is_authentic,
        confidence=max(0, min(100, confidence)),
        reasons=reasons,
        risk_factors=risks,
        verification_steps=steps,
    )

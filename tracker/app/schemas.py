from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class EventStatus(str, Enum):
    MANUFACTURED = "manufactured"
    WAREHOUSED = "warehoused"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"
    VERIFIED = "verified"


class StakeholderType(str, Enum):
    MANUFACTURER = "manufacturer"
    WAREHOUSE = "warehouse"
    TRANSPORTER = "transporter"
    RETAILER = "retailer"
    CUSTOMER = "customer"


class VerificationStatus(str, Enum):
    VERIFIED = "Verified"
    PARTIALLY_VERIFIED = "Partially Verified"
    FAKE = "Fake"


class CamelModel(BaseModel):
    """Base model whose JSON shape uses camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


#  Event chain

class SupplyChainEvent(CamelModel):
    """One custody checkpoint. `data` is hashed together with the base fields."""
    id: str
    product_id: str
    timestamp: int = Field(..., description="Milliseconds since epoch, informational only")
    location: str
    status: EventStatus
    stakeholder: str
    stakeholder_type: StakeholderType
    hash: str
    previous_hash: str
    data: dict[str, Any] = Field(default_factory=dict)


class Product(CamelModel):
    id: str
    name: str
    category: str = ""
    manufacturer: str = ""
    batch_number: str = ""
    manufacturing_date: str = ""
    expiry_date: Optional[str] = None
    authenticity: bool = True
    current_status: EventStatus = EventStatus.MANUFACTURED
    current_location: str = ""
    current_stock: int | float = Field(default=0, description="Derived from events; recomputed on load")
    events: list[SupplyChainEvent] = Field(default_factory=list)


class Block(CamelModel):
    """Display grouping of events for the ledger view. Carries no integrity contract."""
    block_number: int
    events: list[SupplyChainEvent]
    block_hash: str
    previous_block_hash: str
    timestamp: int
    is_valid: bool


class NewEventRequest(CamelModel):
    status: EventStatus
    location: str = Field(..., min_length=1)
    stakeholder: str = Field(..., min_length=1)
    stakeholder_type: StakeholderType
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    notes: Optional[str] = None
    stock_change: Optional[int] = None
    coordinates: Optional[dict[str, float]] = None


class NewProductRequest(CamelModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    manufacturer: str = Field(..., min_length=1)
    batch_number: str = Field(..., min_length=1)
    manufacturing_date: str = Field(..., min_length=1)
    expiry_date: Optional[str] = None
    current_location: str = Field(..., min_length=1)
    initial_stock: int = Field(default=0, ge=0)


class ChainVerifyResponse(CamelModel):
    product_id: str
    event_count: int
    intact: bool
    broken_at: Optional[int] = None


#  Claims

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


class CertificateFields(CamelModel):
    issuer: str = ""
    product_id: str = ""
    batch_number: str = ""
    issue_date: str = ""

    @field_validator("issuer", "product_id", "batch_number", "issue_date", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)


# Alternate spellings per field, in lookup order. The first non-empty one wins.
_CLAIM_KEY_ALTERNATES = {
    "product_id": ("productId", "product_id"),
    "batch_number": ("batchNumber", "batch", "batch_number"),
    "issue_date": ("issueDate", "issue_date"),
}


class ClaimRecord(BaseModel):
    """Structured claims extracted from certificate or document text.

    Accepts every alternate key spelling seen in edited claim JSON
    (productId/product_id, batchNumber/batch/batch_number, issueDate/issue_date)
    and maps them onto one field each. An empty value under one spelling does
    not hide a filled one under another. Serialises back to the extractor's shape.
    """
    model_config = ConfigDict(populate_by_name=True)

    issuer: str = ""
    product_or_document: str = ""
    product_id: str = Field(default="", serialization_alias="productId")
    batch_number: str = Field(default="", serialization_alias="batchNumber")
    issue_date: str = Field(default="", serialization_alias="issueDate")
    issued_date: str = ""
    claims: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def merge_alternate_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, keys in _CLAIM_KEY_ALTERNATES.items():
            values = [data.pop(k) for k in keys if k in data]
            if values:
                data[name] = next((v for v in values if v not in (None, "")), values[0])
        return data

    @field_validator("issuer", "product_or_document", "product_id",
                     "batch_number", "issue_date", "issued_date", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("claims", mode="before")
    @classmethod
    def coerce_claims(cls, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return [_as_text(v) for v in value if v is not None]


class VerificationResult(BaseModel):
    status: VerificationStatus
    reasons: list[str]


class ClaimCheck(BaseModel):
    type: str  # meta | claim
    label: str
    hash: str
    status: VerificationStatus
    details: str


class ExtractRequest(BaseModel):
    text: str = Field(default="", description="Pasted text or decoded .txt upload")


class VerifyClaimsRequest(BaseModel):
    claim_json: str = Field(..., description="Extracted claim record as (possibly edited) JSON text")


class VerifyClaimsResponse(BaseModel):
    verdict: VerificationResult
    checks: list[ClaimCheck]


class CertificateVerifyResponse(BaseModel):
    certificate: CertificateFields
    verdict: VerificationResult


class ExplainRequest(BaseModel):
    status: Optional[VerificationStatus] = None
    reasons: list[str] = Field(default_factory=list)


class Explanation(BaseModel):
    text: str
    source: str  # llm | template

"""
Trust registry: the reference values certificate claims are checked against.

The registry is an explicit, immutable object passed into the verification
functions, so a database- or ledger-backed lookup can replace the built-in
values without touching verification logic.

Lookups are exact, case-sensitive set membership except for issuers, which
match case-insensitively. A near-miss is treated exactly like an absent value.
"""
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger("tracker.registry")


class TrustRegistry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    issuers: frozenset[str] = frozenset()
    product_ids: frozenset[str] = Field(default=frozenset(), alias="productIds")
    batches: frozenset[str] = frozenset()
    issue_dates: frozenset[str] = Field(default=frozenset(), alias="issueDates")

    def has_issuer(self, issuer: str) -> bool:
        needle = issuer.strip().lower()
        return bool(needle) and any(i.lower() == needle for i in self.issuers)

    def has_product(self, product_id: str) -> bool:
        return product_id in self.product_ids

    def has_batch(self, batch: str) -> bool:
        return batch in self.batches

    def has_issue_date(self, date: str) -> bool:
        return date in self.issue_dates

    def as_dict(self) -> dict[str, list[str]]:
        return {
            "issuers": sorted(self.issuers),
            "productIds": sorted(self.product_ids),
            "batches": sorted(self.batches),
            "issueDates": sorted(self.issue_dates),
        }


DEFAULT_REGISTRY = TrustRegistry(
    issuers=frozenset({"Acme Pharma Ltd"}),
    product_ids=frozenset({"PC-100", "PC-200"}),
    batches=frozenset({"BATCH-9999"}),
    issue_dates=frozenset({"2024-01-01"}),
)


def load_registry(path: Optional[str] = None) -> TrustRegistry:
    """Load a registry from a JSON file, or return the built-in one.

    The file holds lists under issuers, productIds, batches and issueDates.
    A missing or malformed file is a configuration error and raises.
    """
    if not path:
        return DEFAULT_REGISTRY
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    registry = TrustRegistry.model_validate(raw)
    log.info("loaded trust registry from %s: %d issuers, %d products, %d batches, %d dates",
             path, len(registry.issuers), len(registry.product_ids),
             len(registry.batches), len(registry.issue_dates))
    return registry

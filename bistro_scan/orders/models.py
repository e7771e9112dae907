"""
==============================================================================
Order Models Module
==============================================================================

Pydantic models for order records and match results.

==============================================================================
"""

from __future__ import annotations

import enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bistro_scan.scanner.models import ValidatedCode


class OrderStatus(str, enum.Enum):
    """
    Order status enumeration.

    - PENDING: Order taken, kitchen working on it
    - READY: Order ready for pickup or serving
    - SCANNED: Order ticket scanned at hand-off
    - CANCELLED: Order abandoned
    """

    PENDING = "pending"
    READY = "ready"
    SCANNED = "scanned"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


class OrderLine(BaseModel):
    """Line item of an order."""

    model_config = ConfigDict(from_attributes=True)

    sku: str = Field(..., min_length=1, description="Item SKU or GTIN")
    name: str = Field(..., min_length=1, description="Item display name")
    quantity: int = Field(default=1, ge=1, description="Ordered quantity")


class OrderRecord(BaseModel):
    """
    Order as seen by the matcher.

    Records belong to the order store; match results only reference them.

    Attributes:
        order_key: Key printed on the order ticket barcode (e.g. "123456")
        reference: Display reference (e.g. "ORD-123456")
        status: Current order status
        customer_name: Customer name, if taken
        table_number: Table for dine-in orders
        items: Line items
    """

    model_config = ConfigDict(from_attributes=True)

    order_key: str = Field(..., min_length=1, description="Ticket barcode key")
    reference: str = Field(..., min_length=1, description="Display reference")
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    customer_name: Optional[str] = Field(default=None)
    table_number: Optional[str] = Field(default=None)
    items: List[OrderLine] = Field(default_factory=list)

    @classmethod
    def reference_for(cls, order_key: str) -> str:
        """Build the display reference for an order key."""
        return f"ORD-{order_key}"

    @property
    def skus(self) -> List[str]:
        """SKUs of every line item."""
        return [line.sku for line in self.items]


class MatchReason(str, enum.Enum):
    """Outcome of an order lookup."""

    OK = "ok"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


class MatchResult(BaseModel):
    """
    Terminal value of one scan.

    found is True iff reason is OK iff order is set. candidates lists the
    competing references of an AMBIGUOUS match and is empty otherwise.
    """

    model_config = ConfigDict(frozen=True)

    found: bool
    reason: MatchReason
    code: ValidatedCode
    order: Optional[OrderRecord] = None
    candidates: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def check_consistency(self):
        if self.found != (self.reason == MatchReason.OK):
            raise ValueError("found must be True exactly when reason is OK")
        if self.found != (self.order is not None):
            raise ValueError("order must be set exactly when found")
        if self.candidates and self.reason != MatchReason.AMBIGUOUS:
            raise ValueError("candidates are only reported for ambiguous matches")
        return self

    @classmethod
    def ok(cls, code: ValidatedCode, order: OrderRecord) -> "MatchResult":
        return cls(found=True, reason=MatchReason.OK, code=code, order=order)

    @classmethod
    def not_found(cls, code: ValidatedCode) -> "MatchResult":
        return cls(found=False, reason=MatchReason.NOT_FOUND, code=code)

    @classmethod
    def ambiguous(cls, code: ValidatedCode, candidates: List[str]) -> "MatchResult":
        return cls(
            found=False,
            reason=MatchReason.AMBIGUOUS,
            code=code,
            candidates=tuple(candidates)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "found": self.found,
            "reason": self.reason.value,
            "code": {
                "normalized_payload": self.code.normalized_payload,
                "code_type": self.code.code_type.value,
            },
            "order": self.order.model_dump(mode="json") if self.order else None,
            "candidates": list(self.candidates),
        }

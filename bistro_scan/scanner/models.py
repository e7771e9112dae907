"""
==============================================================================
Scan Models Module
==============================================================================

Immutable Pydantic models passed between decoder and validator.

==============================================================================
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .symbology import Symbology


class CodeType(str, enum.Enum):
    """
    Classification of a validated payload.

    - ORDER_ID: numeric order ticket number
    - ITEM_SKU: prefixed item code or retail GTIN
    - UNKNOWN: accepted only when unknown codes are allowed
    """

    ORDER_ID = "order_id"
    ITEM_SKU = "item_sku"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


class DecodedSymbol(BaseModel):
    """
    One symbol read from a frame.

    Attributes:
        payload: Raw bytes reported by the backend
        symbology: Symbology that produced the payload
        confidence: Backend quality score when it reports one
    """

    model_config = ConfigDict(frozen=True)

    payload: bytes = Field(..., description="Raw decoded bytes")
    symbology: Symbology = Field(..., description="Barcode symbology")
    confidence: Optional[float] = Field(default=None, ge=0, le=1, description="Backend quality score")

    @property
    def text(self) -> str:
        """Payload as text, with undecodable bytes replaced."""
        return self.payload.decode("utf-8", errors="replace")


class ValidatedCode(BaseModel):
    """
    A payload that matched one recognized pattern.

    Attributes:
        normalized_payload: Trimmed, case-folded lookup key (never empty)
        code_type: Pattern class the payload matched
    """

    model_config = ConfigDict(frozen=True)

    normalized_payload: str = Field(..., min_length=1, description="Normalized lookup key")
    code_type: CodeType = Field(..., description="Code classification")

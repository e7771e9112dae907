"""
==============================================================================
Scan Schemas Module
==============================================================================

Request and response schemas for the scan endpoints.

Images travel base64-encoded inside JSON; a data URL prefix
("data:image/png;base64,") is accepted and stripped.

==============================================================================
"""

import base64
import binascii
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from bistro_scan.core.exceptions import invalid_image
from bistro_scan.scanner.symbology import Symbology


def decode_base64_image(value: str) -> bytes:
    """
    Decode a base64 image body, with or without a data URL prefix.

    Raises:
        ValueError: If the text is not valid base64
    """
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image: {e}") from e


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ImageScanRequest(BaseModel):
    """Still image to scan."""
    image: str = Field(..., min_length=1, description="Base64 encoded image file")

    @field_validator("image")
    @classmethod
    def strip_image(cls, v: str) -> str:
        return v.strip()

    def image_bytes(self) -> bytes:
        """
        Decoded image file.

        Raises:
            AppException: INVALID_IMAGE when the body is not base64
        """
        try:
            return decode_base64_image(self.image)
        except ValueError as e:
            raise invalid_image(str(e)) from e


class CodeScanRequest(BaseModel):
    """Manually entered or wedge-scanned payload."""
    payload: str = Field(..., min_length=1, max_length=256)
    symbology: Symbology = Field(default=Symbology.CODE128)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class SymbolOutcome(BaseModel):
    """Result for one symbol found in an image."""
    payload: str
    symbology: Symbology
    confidence: Optional[float] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None


class ImageScanResponse(BaseModel):
    """Every symbol found in an image."""
    success: bool = Field(default=True)
    symbols: List[SymbolOutcome] = Field(default_factory=list)
    count: int = Field(default=0, ge=0)


class CodeScanResponse(BaseModel):
    """Match for a single payload."""
    success: bool = Field(default=True)
    result: Dict[str, Any]

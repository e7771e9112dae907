"""
==============================================================================
Schemas Package - API Request/Response Models
==============================================================================

Pydantic models for API request validation and response serialization.

==============================================================================
"""

from .common import ErrorDetail, ErrorResponse, ListResponse, error_responses
from .order import (
    OrderCreate,
    OrderEnvelope,
    OrderItemCreate,
    OrderItemResponse,
    OrderResponse,
)
from .scan import (
    CodeScanRequest,
    CodeScanResponse,
    ImageScanRequest,
    ImageScanResponse,
    SymbolOutcome,
    decode_base64_image,
)

__all__ = [
    # Common
    "ListResponse",
    "ErrorDetail",
    "ErrorResponse",
    "error_responses",
    # Orders
    "OrderCreate",
    "OrderEnvelope",
    "OrderItemCreate",
    "OrderItemResponse",
    "OrderResponse",
    # Scanning
    "CodeScanRequest",
    "CodeScanResponse",
    "ImageScanRequest",
    "ImageScanResponse",
    "SymbolOutcome",
    "decode_base64_image",
]

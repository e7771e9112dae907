"""
==============================================================================
Common Schemas Module
==============================================================================

Response envelopes shared by the order and scan endpoints.

Every failure is rendered by the exception handlers as ErrorResponse, so
routes list it under `responses=` for the OpenAPI docs.

==============================================================================
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field


T = TypeVar("T")


class ErrorDetail(BaseModel):
    """Body of a failed request."""
    code: str = Field(..., examples=["CODE_INVALID"])
    message: str
    retryable: bool = False
    timestamp: datetime
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error envelope produced by the exception handlers."""
    success: bool = Field(default=False)
    error: ErrorDetail


class ListResponse(BaseModel, Generic[T]):
    """List of items with their count."""
    success: bool = Field(default=True)
    items: List[T]
    total: int = Field(ge=0)

    @classmethod
    def create(cls, items: List[T]):
        return cls(items=items, total=len(items))


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI `responses=` entries for the given error statuses."""
    return {code: {"model": ErrorResponse} for code in status_codes}

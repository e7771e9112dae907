"""
==============================================================================
Order Schemas Module
==============================================================================

Request and response schemas for order operations.

==============================================================================
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bistro_scan.orders.models import OrderStatus


# =============================================================================
# CREATE SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Line item in an order creation."""
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(default=1, gt=0, le=999)

    @field_validator("sku", "name")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @field_validator("sku")
    @classmethod
    def upper_sku(cls, v: str) -> str:
        return v.upper()


class OrderCreate(BaseModel):
    """Order creation."""
    order_key: str = Field(..., min_length=1, max_length=32)
    items: List[OrderItemCreate] = Field(default_factory=list)
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    customer_name: Optional[str] = Field(default=None, max_length=100)
    table_number: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("order_key")
    @classmethod
    def validate_order_key(cls, v: str) -> str:
        v = v.strip()
        if not v or " " in v:
            raise ValueError("Order key cannot be blank or contain spaces")
        return v

    @field_validator("notes", "customer_name", "table_number")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v:
            v = v.strip()
            return v if v else None
        return None

    @model_validator(mode="after")
    def validate_unique_skus(self):
        skus = [item.sku for item in self.items]
        if len(skus) != len(set(skus)):
            raise ValueError("Duplicate SKUs not allowed")
        return self


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderItemResponse(BaseModel):
    """Line item in responses."""
    model_config = ConfigDict(from_attributes=True)

    sku: str
    name: str
    quantity: int


class OrderResponse(BaseModel):
    """Full order response."""
    model_config = ConfigDict(from_attributes=True)

    order_key: str
    reference: str
    status: OrderStatus
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    scanned_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)


class OrderEnvelope(BaseModel):
    """Single-order response."""
    success: bool = Field(default=True)
    message: Optional[str] = None
    order: OrderResponse

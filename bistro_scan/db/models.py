"""
==============================================================================
SQLAlchemy ORM Models Module
==============================================================================

ORM models for the order store.

Database Schema:
---------------

    ┌─────────────────────────────────────────────────────────────────┐
    │                            orders                                │
    ├─────────────────────────────────────────────────────────────────┤
    │ id (UUID, PK)                                                   │
    │ order_key (VARCHAR, UNIQUE, NOT NULL)                           │
    │ status (ENUM: pending, ready, scanned, cancelled)               │
    │ customer_name (VARCHAR, NULLABLE)                               │
    │ table_number (VARCHAR, NULLABLE)                                │
    │ notes (VARCHAR, NULLABLE)                                       │
    │ created_at (DATETIME, DEFAULT now)                              │
    │ scanned_at (DATETIME, NULLABLE)                                 │
    └─────────────────────────────────────────────────────────────────┘
                                    │
                                    │ 1:N (CASCADE DELETE)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────┐
    │                         order_items                              │
    ├─────────────────────────────────────────────────────────────────┤
    │ id (INTEGER, PK, AUTO INCREMENT)                                │
    │ order_id (UUID, FK → orders.id)                                 │
    │ sku (VARCHAR, INDEXED, NOT NULL)                                │
    │ name (VARCHAR, NOT NULL)                                        │
    │ quantity (INTEGER, DEFAULT 1)                                   │
    └─────────────────────────────────────────────────────────────────┘

Status Flow:
-----------
    PENDING ──▶ READY ──▶ SCANNED
       │          │
       └──────────┴──▶ CANCELLED

==============================================================================
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, relationship

from bistro_scan.db.database import Base
from bistro_scan.orders.models import OrderRecord, OrderStatus


# =============================================================================
# ORDER MODEL
# =============================================================================

class Order(Base):
    """
    Restaurant order.

    Attributes:
        id: Unique identifier (UUID)
        order_key: Key encoded on the order ticket barcode
        status: Current order status
        customer_name: Customer name, if taken
        table_number: Table for dine-in orders
        notes: Kitchen notes
        created_at: Order creation timestamp
        scanned_at: When the ticket was scanned at hand-off

    Relationships:
        items: Ordered line items

    Example:
        >>> order = Order(order_key="123456", table_number="4")
        >>> order.items.append(OrderItem(sku="SKU-BURGER", name="Burger"))
        >>> session.add(order)
        >>> session.commit()
    """

    __tablename__ = "orders"

    # =========================================================================
    # COLUMNS
    # =========================================================================

    id: str = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        doc="Unique order identifier (UUID)"
    )

    order_key: str = Column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
        doc="Key encoded on the order ticket"
    )

    status: OrderStatus = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
        doc="Current order status"
    )

    customer_name: Optional[str] = Column(
        String(100),
        nullable=True,
        doc="Customer name"
    )

    table_number: Optional[str] = Column(
        String(20),
        nullable=True,
        doc="Table for dine-in orders"
    )

    notes: Optional[str] = Column(
        String(500),
        nullable=True,
        doc="Kitchen notes"
    )

    created_at: datetime = Column(
        DateTime,
        default=func.now(),
        nullable=False,
        doc="Order creation timestamp"
    )

    scanned_at: Optional[datetime] = Column(
        DateTime,
        nullable=True,
        doc="When the ticket was scanned"
    )

    # =========================================================================
    # RELATIONSHIPS
    # =========================================================================

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        doc="Ordered line items"
    )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def reference(self) -> str:
        """Display reference, e.g. ORD-123456."""
        return OrderRecord.reference_for(self.order_key)

    @property
    def is_scanned(self) -> bool:
        """Check if the ticket was already scanned."""
        return self.status == OrderStatus.SCANNED

    @property
    def total_items(self) -> int:
        """Total quantity across line items."""
        return sum(item.quantity for item in self.items)

    def to_record(self) -> OrderRecord:
        """Detach into an OrderRecord for the matcher."""
        return OrderRecord.model_validate(self, from_attributes=True)

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"Order(order_key={self.order_key!r}, "
            f"status={self.status.value!r}, "
            f"items={len(self.items)})"
        )


# =============================================================================
# ORDER ITEM MODEL
# =============================================================================

class OrderItem(Base):
    """Line item of an order."""

    __tablename__ = "order_items"

    id: int = Column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    order_id: str = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Parent order"
    )

    sku: str = Column(
        String(50),
        nullable=False,
        index=True,
        doc="Item SKU or GTIN"
    )

    name: str = Column(
        String(255),
        nullable=False,
        doc="Item display name"
    )

    quantity: int = Column(
        Integer,
        default=1,
        nullable=False,
        doc="Ordered quantity"
    )

    order: Mapped["Order"] = relationship(
        "Order",
        back_populates="items"
    )

    def __repr__(self) -> str:
        return f"OrderItem(sku={self.sku!r}, quantity={self.quantity})"

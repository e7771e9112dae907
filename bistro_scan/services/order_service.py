"""
==============================================================================
Order Service Module
==============================================================================

Order management for the REST API.

Marking an order as scanned lives here, outside the matcher: a match only
reports which order a code belongs to.

==============================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from bistro_scan.core import exceptions
from bistro_scan.db.models import Order, OrderItem
from bistro_scan.orders.models import OrderStatus
from bistro_scan.schemas.order import OrderCreate


# Module logger
logger = logging.getLogger(__name__)


class OrderService:
    """
    Service for order CRUD and hand-off.

    Attributes:
        _db: Database session

    Example:
        >>> service = OrderService(db_session)
        >>> order = service.create_order(OrderCreate(order_key="123456"))
        >>> service.mark_scanned("123456").status
        <OrderStatus.SCANNED: 'scanned'>
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    # =========================================================================
    # CREATE
    # =========================================================================

    def create_order(self, data: OrderCreate) -> Order:
        """
        Create an order with its line items.

        Raises:
            AppException: ORDER_EXISTS if the key is taken
        """
        if self._find(data.order_key) is not None:
            raise exceptions.order_exists(data.order_key)

        order = Order(
            order_key=data.order_key,
            status=data.status,
            customer_name=data.customer_name,
            table_number=data.table_number,
            notes=data.notes,
        )
        for item_data in data.items:
            order.items.append(OrderItem(
                sku=item_data.sku,
                name=item_data.name,
                quantity=item_data.quantity,
            ))

        try:
            self._db.add(order)
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            raise exceptions.order_exists(data.order_key)

        logger.info(f"Order created: {order.reference} ({len(order.items)} items)")
        return self.get_order(data.order_key)

    # =========================================================================
    # READ
    # =========================================================================

    def _find(self, order_key: str) -> Optional[Order]:
        return (
            self._db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.order_key == order_key)
            .first()
        )

    def get_order(self, order_key: str) -> Order:
        """
        Get an order by key.

        Raises:
            AppException: ORDER_NOT_FOUND
        """
        order = self._find(order_key)
        if order is None:
            raise exceptions.order_not_found(order_key)
        return order

    def list_orders(self, status: Optional[OrderStatus] = None) -> List[Order]:
        """List orders, newest first, optionally filtered by status."""
        query = self._db.query(Order).options(selectinload(Order.items))
        if status is not None:
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc(), Order.order_key).all()

    # =========================================================================
    # HAND-OFF
    # =========================================================================

    def mark_scanned(self, order_key: str) -> Order:
        """
        Record that an order's ticket was scanned.

        Scanning again is a no-op. Cancelled orders cannot be scanned.

        Raises:
            AppException: ORDER_NOT_FOUND, INVALID_STATUS
        """
        order = self.get_order(order_key)

        if order.status == OrderStatus.SCANNED:
            return order

        if order.status == OrderStatus.CANCELLED:
            raise exceptions.invalid_status(order.status.value, "pending or ready")

        order.status = OrderStatus.SCANNED
        order.scanned_at = datetime.utcnow()
        self._db.commit()

        logger.info(f"Order scanned: {order.reference}")
        return order

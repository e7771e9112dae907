"""
==============================================================================
SQL Order Store Module
==============================================================================

OrderStore backed by the SQLAlchemy orders tables.

Each lookup opens and closes its own session, so the store can be called
from the matcher's worker thread.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Callable, List

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from bistro_scan.db.models import Order, OrderItem

from .models import OrderRecord
from .store import OrderStore


# Module logger
logger = logging.getLogger(__name__)


class SqlOrderStore(OrderStore):
    """
    Order store reading the orders and order_items tables.

    A key matches an order by its order_key or by the SKU of any of its
    line items.

    Example:
        >>> store = SqlOrderStore(get_database_manager().get_session)
        >>> store.find_all("123456")
        [OrderRecord(order_key='123456', ...)]
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def find_all(self, key: str) -> List[OrderRecord]:
        session = self._session_factory()
        try:
            orders = (
                session.query(Order)
                .options(selectinload(Order.items))
                .filter(or_(
                    Order.order_key == key,
                    Order.items.any(OrderItem.sku == key),
                ))
                .order_by(Order.order_key)
                .all()
            )
            logger.debug(f"SQL lookup {key!r}: {len(orders)} orders")
            return [order.to_record() for order in orders]
        finally:
            session.close()

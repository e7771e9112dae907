"""
==============================================================================
Database Initialization Module
==============================================================================

Database setup and seeding utilities.

Initialization Flow:
-------------------
1. Create all tables from ORM models
2. Verify the connection
3. Seed orders from the orders file when the table is empty

Orders File Format:
------------------
    [
        {
            "order_key": "123456",
            "status": "ready",
            "table_number": "4",
            "items": [{"sku": "SKU-BURGER", "name": "Burger", "quantity": 2}]
        }
    ]

Usage:
------
    from bistro_scan.db import init_db, DatabaseInitializer

    init_db()

    initializer = DatabaseInitializer(session=session)
    initializer.seed_orders(path)

==============================================================================
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from bistro_scan.config import get_settings
from bistro_scan.db.database import Base, DatabaseManager, get_database_manager
from bistro_scan.db.models import Order, OrderItem
from bistro_scan.orders.models import OrderStatus


# Module logger
logger = logging.getLogger(__name__)


class DatabaseInitializer:
    """
    Database initialization manager.

    Attributes:
        _db_manager: DatabaseManager instance
        _settings: Application settings
        _session: Optional caller-owned session

    Example:
        >>> initializer = DatabaseInitializer()
        >>> initializer.initialize()
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        session: Optional[Session] = None
    ) -> None:
        """
        Initialize the database initializer.

        Args:
            db_manager: DatabaseManager (application-wide one if None)
            session: Optional existing session (creates new if None)
        """
        self._db_manager = db_manager or get_database_manager()
        self._settings = get_settings()
        self._session = session

    def _get_session(self) -> Session:
        if self._session is not None:
            return self._session
        return self._db_manager.get_session()

    def _close_session(self, session: Session) -> None:
        if session is not self._session:
            session.close()

    # =========================================================================
    # TABLE OPERATIONS
    # =========================================================================

    def create_tables(self) -> None:
        """Create all database tables from ORM models."""
        logger.info("Creating database tables...")
        if self._session is not None:
            Base.metadata.create_all(bind=self._session.get_bind())
        else:
            self._db_manager.create_tables()
        logger.info("Database tables created successfully")

    # =========================================================================
    # SEEDING
    # =========================================================================

    @staticmethod
    def load_orders_file(path: Path) -> List[Dict[str, Any]]:
        """
        Read order definitions from a JSON file.

        Returns:
            List of order dicts (empty when the file is missing)
        """
        if not path.exists():
            logger.info(f"No orders file at {path}, skipping seed")
            return []

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, list):
            raise ValueError(f"Orders file must hold a JSON array: {path}")
        return data

    def seed_orders(self, path: Optional[Path] = None) -> int:
        """
        Seed orders when the orders table is empty.

        Args:
            path: Orders file (default: settings.orders_path)

        Returns:
            Number of orders inserted
        """
        path = path or self._settings.orders_path
        session = self._get_session()

        try:
            if session.query(Order).count() > 0:
                logger.debug("Orders table already populated, skipping seed")
                return 0

            entries = self.load_orders_file(path)
            for entry in entries:
                order = Order(
                    order_key=str(entry["order_key"]),
                    status=OrderStatus(entry.get("status", OrderStatus.PENDING.value)),
                    customer_name=entry.get("customer_name"),
                    table_number=entry.get("table_number"),
                    notes=entry.get("notes"),
                )
                for item in entry.get("items", []):
                    order.items.append(OrderItem(
                        sku=item["sku"],
                        name=item["name"],
                        quantity=item.get("quantity", 1),
                    ))
                session.add(order)

            session.commit()
            logger.info(f"Seeded {len(entries)} orders from {path}")
            return len(entries)

        except Exception as e:
            session.rollback()
            logger.error(f"Failed to seed orders: {e}")
            raise

        finally:
            self._close_session(session)

    # =========================================================================
    # FULL INITIALIZATION
    # =========================================================================

    def initialize(self) -> None:
        """
        Perform full database initialization.

        1. Create tables
        2. Verify connection
        3. Seed orders
        """
        self.create_tables()

        if self._session is None and not self._db_manager.verify_connection():
            raise RuntimeError("Database connection failed")

        self.seed_orders()
        logger.info(f"Order database ready: {self.get_stats()}")

    def get_stats(self) -> Dict[str, Any]:
        """Get order counts per status."""
        session = self._get_session()
        try:
            stats: Dict[str, Any] = {"orders": session.query(Order).count()}
            for status in OrderStatus:
                stats[status.value] = session.query(Order).filter(
                    Order.status == status
                ).count()
            return stats
        finally:
            self._close_session(session)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def init_db() -> None:
    """
    Initialize the database.

    Called on application startup.
    """
    initializer = DatabaseInitializer()
    initializer.initialize()

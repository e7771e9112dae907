"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the scan and order routes.

Dependency Hierarchy:
--------------------
                    ┌──────────────────┐
                    │ get_order_store  │
                    └────────┬─────────┘
                             │
                    ┌────────▼─────────┐
                    │ get_scan_service │
                    └──────────────────┘

Tests swap the order store with app.dependency_overrides[get_order_store].

==============================================================================
"""

from __future__ import annotations

import logging

from fastapi import Depends

from bistro_scan.db.database import get_database_manager
from bistro_scan.orders.sql_store import SqlOrderStore
from bistro_scan.orders.store import OrderStore
from bistro_scan.services.scan_service import ScanService


# Module logger
logger = logging.getLogger(__name__)


def get_order_store() -> OrderStore:
    """
    Order store backed by the application database.

    Lookups open their own sessions, so the store is not tied to the
    request session.
    """
    return SqlOrderStore(get_database_manager().get_session)


def get_scan_service(store: OrderStore = Depends(get_order_store)) -> ScanService:
    """Scan service reading from the injected order store."""
    return ScanService(store)

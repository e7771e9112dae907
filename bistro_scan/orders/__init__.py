"""
==============================================================================
Orders Package - Order Lookup & Matching
==============================================================================

Order records, the store interface and the matcher.

Classes:
--------
- OrderRecord / OrderLine / OrderStatus: Order models
- MatchResult / MatchReason: Matcher output
- OrderStore / AsyncOrderStore / InMemoryOrderStore: Lookup interface
- OrderMatcher: Code to order matching

The SQLAlchemy-backed store lives in bistro_scan.orders.sql_store.

==============================================================================
"""

from .models import MatchReason, MatchResult, OrderLine, OrderRecord, OrderStatus
from .store import AsyncOrderStore, InMemoryOrderStore, OrderStore
from .matcher import OrderMatcher

__all__ = [
    "MatchReason",
    "MatchResult",
    "OrderLine",
    "OrderRecord",
    "OrderStatus",
    "AsyncOrderStore",
    "InMemoryOrderStore",
    "OrderStore",
    "OrderMatcher",
]

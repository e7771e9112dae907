"""
==============================================================================
Order Store Module
==============================================================================

Keyed lookup interface the matcher reads orders through.

Contract:
--------
    get(key) -> Optional[OrderRecord]
    find_all(key) -> List[OrderRecord]   (exposes duplicate keys)

The matcher also accepts any object with a get(key) method returning None,
a record, or a sequence of records, so a plain dict works as a store.

==============================================================================
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .models import OrderRecord


# Module logger
logger = logging.getLogger(__name__)


class OrderStore(ABC):
    """Synchronous order lookup."""

    @abstractmethod
    def find_all(self, key: str) -> List[OrderRecord]:
        """Return every record indexed under key."""

    def get(self, key: str) -> Optional[OrderRecord]:
        """Return the record for key, or None when absent or not unique."""
        records = self.find_all(key)
        return records[0] if len(records) == 1 else None


class AsyncOrderStore(ABC):
    """Coroutine order lookup, same contract as OrderStore."""

    @abstractmethod
    async def find_all(self, key: str) -> List[OrderRecord]:
        """Return every record indexed under key."""

    async def get(self, key: str) -> Optional[OrderRecord]:
        """Return the record for key, or None when absent or not unique."""
        records = await self.find_all(key)
        return records[0] if len(records) == 1 else None


class InMemoryOrderStore(OrderStore):
    """
    Dictionary-backed store indexing order keys and item SKUs.

    An item SKU that appears on several orders resolves to all of them.

    Example:
        >>> store = InMemoryOrderStore([record])
        >>> store.get("123456").reference
        'ORD-123456'
    """

    def __init__(self, records: Optional[Iterable[OrderRecord]] = None) -> None:
        self._index: Dict[str, List[OrderRecord]] = defaultdict(list)
        for record in records or []:
            self.add(record)

    def add(self, record: OrderRecord) -> None:
        """Index a record under its order key and its item SKUs."""
        keys = [record.order_key] + [sku for sku in record.skus if sku != record.order_key]
        for key in dict.fromkeys(keys):
            self._index[key].append(record)
        logger.debug(f"Indexed {record.reference} under {len(keys)} keys")

    def find_all(self, key: str) -> List[OrderRecord]:
        return list(self._index.get(key, []))

    def __len__(self) -> int:
        return len({record.reference for records in self._index.values() for record in records})

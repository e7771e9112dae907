"""
==============================================================================
Order Matcher Tests
==============================================================================

Tests for match outcomes, store shapes, lookup timeouts and cancellation.

==============================================================================
"""

import asyncio
import threading
import time
from typing import List

import pytest

from bistro_scan.core.exceptions import (
    LookupCancelledError,
    LookupTimeoutError,
    StoreUnavailableError,
)
from bistro_scan.orders import (
    AsyncOrderStore,
    MatchReason,
    MatchResult,
    OrderMatcher,
    OrderRecord,
)
from bistro_scan.orders.sql_store import SqlOrderStore
from bistro_scan.scanner import CodeType, ValidatedCode

from conftest import BrokenStore, SHARED_GTIN, SlowStore, TestingSessionLocal, make_record


def order_code(key: str = "123456") -> ValidatedCode:
    return ValidatedCode(normalized_payload=key, code_type=CodeType.ORDER_ID)


def sku_code(key: str) -> ValidatedCode:
    return ValidatedCode(normalized_payload=key, code_type=CodeType.ITEM_SKU)


class AsyncMemoryStore(AsyncOrderStore):
    def __init__(self, records, delay: float = 0.0):
        self._records = records
        self._delay = delay

    async def find_all(self, key: str) -> List[OrderRecord]:
        await asyncio.sleep(self._delay)
        return [r for r in self._records if r.order_key == key]


class TestMatchOutcomes:
    """OK / NOT_FOUND / AMBIGUOUS."""

    def test_found(self, memory_store):
        result = OrderMatcher().match(order_code("123456"), memory_store)

        assert result.found is True
        assert result.reason == MatchReason.OK
        assert result.order.reference == "ORD-123456"
        assert result.candidates == ()

    def test_found_by_sku(self, memory_store):
        result = OrderMatcher().match(sku_code("SKU-BURGER01"), memory_store)
        assert result.reason == MatchReason.OK
        assert result.order.order_key == "123456"

    def test_not_found(self, memory_store):
        result = OrderMatcher().match(order_code("999999"), memory_store)

        assert result.found is False
        assert result.reason == MatchReason.NOT_FOUND
        assert result.order is None

    def test_ambiguous(self, memory_store):
        result = OrderMatcher().match(sku_code(SHARED_GTIN), memory_store)

        assert result.found is False
        assert result.reason == MatchReason.AMBIGUOUS
        assert result.order is None
        assert result.candidates == ("ORD-204518", "ORD-318802")

    def test_same_record_twice_is_not_ambiguous(self):
        record = make_record("123456")
        result = OrderMatcher().match(order_code(), {"123456": [record, record]})
        assert result.reason == MatchReason.OK

    def test_record_is_referenced_not_copied(self):
        record = make_record("123456")
        result = OrderMatcher().match(order_code(), {"123456": record})
        assert result.order is record

    def test_mapping_store_miss(self):
        result = OrderMatcher().match(order_code(), {})
        assert result.reason == MatchReason.NOT_FOUND

    def test_store_without_lookup_fails(self):
        with pytest.raises(StoreUnavailableError):
            OrderMatcher().match(order_code(), object())

    def test_async_store_needs_match_async(self):
        store = AsyncMemoryStore([make_record("123456")])
        with pytest.raises(TypeError, match="match_async"):
            OrderMatcher().match(order_code(), store)

    def test_result_consistency_enforced(self):
        with pytest.raises(ValueError):
            MatchResult(found=True, reason=MatchReason.NOT_FOUND, code=order_code())

    def test_to_dict(self, memory_store):
        data = OrderMatcher().match(order_code(), memory_store).to_dict()
        assert data["found"] is True
        assert data["reason"] == "ok"
        assert data["code"] == {"normalized_payload": "123456", "code_type": "order_id"}
        assert data["order"]["reference"] == "ORD-123456"


class TestStoreFailures:
    """Timeouts, cancellation and broken stores."""

    def test_lookup_timeout(self):
        store = SlowStore()
        matcher = OrderMatcher(lookup_timeout=0.1)
        started = time.monotonic()

        with pytest.raises(LookupTimeoutError) as exc_info:
            matcher.match(order_code(), store)

        assert time.monotonic() - started < 2.0
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 504
        store.release.set()

    def test_matcher_recovers_after_timeout(self, memory_store):
        store = SlowStore()
        matcher = OrderMatcher(lookup_timeout=0.1)

        with pytest.raises(LookupTimeoutError):
            matcher.match(order_code(), store)
        store.release.set()

        assert matcher.match(order_code(), memory_store).reason == MatchReason.OK
        matcher.close()

    def test_cancel_event(self):
        store = SlowStore()
        cancel = threading.Event()
        matcher = OrderMatcher(lookup_timeout=None)

        threading.Timer(0.05, cancel.set).start()
        with pytest.raises(LookupCancelledError):
            matcher.match(order_code(), store, cancel_event=cancel)
        store.release.set()

    def test_already_cancelled(self, memory_store):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(LookupCancelledError):
            OrderMatcher().match(order_code(), memory_store, cancel_event=cancel)

    def test_broken_store(self):
        with pytest.raises(StoreUnavailableError) as exc_info:
            OrderMatcher().match(order_code(), BrokenStore())
        assert exc_info.value.status_code == 503
        assert "database is down" in exc_info.value.details["reason"]


class TestAsyncMatching:
    """match_async with coroutine and sync stores."""

    def test_async_store(self):
        store = AsyncMemoryStore([make_record("123456")])
        result = asyncio.run(OrderMatcher().match_async(order_code(), store))
        assert result.reason == MatchReason.OK

    def test_async_store_timeout(self):
        store = AsyncMemoryStore([make_record("123456")], delay=5.0)
        with pytest.raises(LookupTimeoutError):
            asyncio.run(OrderMatcher(lookup_timeout=0.1).match_async(order_code(), store))

    def test_sync_store_from_async(self, memory_store):
        result = asyncio.run(OrderMatcher().match_async(sku_code(SHARED_GTIN), memory_store))
        assert result.reason == MatchReason.AMBIGUOUS

    def test_async_cancel(self):
        store = AsyncMemoryStore([make_record("123456")], delay=5.0)
        cancel = threading.Event()

        async def run():
            asyncio.get_running_loop().call_later(0.05, cancel.set)
            return await OrderMatcher(lookup_timeout=None).match_async(
                order_code(), store, cancel_event=cancel
            )

        with pytest.raises(LookupCancelledError):
            asyncio.run(run())


class TestSqlOrderStore:
    """SQLAlchemy-backed store."""

    def test_lookup_by_key_and_sku(self, seeded_orders):
        store = SqlOrderStore(TestingSessionLocal)

        by_key = store.find_all("123456")
        assert [r.reference for r in by_key] == ["ORD-123456"]
        assert by_key[0].items[0].sku == "SKU-BURGER01"

        assert [r.order_key for r in store.find_all("SKU-BURGER01")] == ["123456"]
        assert store.get("nope") is None

    def test_ambiguous_gtin(self, seeded_orders):
        result = OrderMatcher().match(sku_code(SHARED_GTIN), SqlOrderStore(TestingSessionLocal))
        assert result.reason == MatchReason.AMBIGUOUS
        assert result.candidates == ("ORD-204518", "ORD-318802")

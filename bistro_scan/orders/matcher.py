"""
==============================================================================
Order Matcher Module
==============================================================================

Maps a validated code to an order record through an order store.

Match Outcomes:
--------------
- OK: exactly one record under the key
- NOT_FOUND: no record under the key
- AMBIGUOUS: several distinct records share the key; the candidates are
  reported for manual resolution instead of picking one

Lookup Bounds:
-------------
Sync lookups run on a single worker thread owned by the matcher and are
awaited in short polls, so both the timeout and a caller's cancel event are
honored while the store is still busy. A lookup that outlives its timeout
abandons the worker and the next lookup gets a fresh one.

==============================================================================
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, List, Optional, Sequence

from bistro_scan.config import Settings
from bistro_scan.core.exceptions import (
    AppException,
    LookupCancelledError,
    LookupTimeoutError,
    StoreUnavailableError,
)
from bistro_scan.scanner.models import ValidatedCode

from .models import MatchResult, OrderRecord


# Module logger
logger = logging.getLogger(__name__)


class OrderMatcher:
    """
    Order matcher with time-bounded, cancellable store lookups.

    The matcher never mutates the store; marking an order as scanned is
    the caller's business.

    Attributes:
        lookup_timeout: Seconds to wait for the store (None = unbounded)

    Example:
        >>> matcher = OrderMatcher(lookup_timeout=2.0)
        >>> result = matcher.match(code, store)
        >>> result.reason
        <MatchReason.OK: 'ok'>
    """

    # Seconds between cancel/timeout checks while a lookup is running
    POLL_INTERVAL = 0.02

    def __init__(self, lookup_timeout: Optional[float] = 2.0) -> None:
        self._timeout = lookup_timeout
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrderMatcher":
        """Build a matcher from application settings."""
        return cls(lookup_timeout=settings.lookup_timeout_seconds)

    @property
    def lookup_timeout(self) -> Optional[float]:
        return self._timeout

    # =========================================================================
    # SYNC MATCHING
    # =========================================================================

    def match(
        self,
        code: ValidatedCode,
        store: Any,
        cancel_event: Optional[threading.Event] = None
    ) -> MatchResult:
        """
        Look up a validated code and classify the outcome.

        Args:
            code: Validated code; its normalized payload is the lookup key
            store: OrderStore, or any object with get(key)
            cancel_event: Set it to abandon the lookup

        Returns:
            Exactly one MatchResult

        Raises:
            LookupTimeoutError: Store did not answer in time
            LookupCancelledError: cancel_event was set
            StoreUnavailableError: Store raised
            TypeError: Store has a coroutine lookup
        """
        key = code.normalized_payload
        try:
            lookup = self._lookup_method(store)
        except TypeError as e:
            raise StoreUnavailableError(key, str(e)) from e

        # A coroutine store called from a thread would hand back an unawaited coroutine
        if inspect.iscoroutinefunction(lookup):
            raise TypeError(f"{type(store).__name__} is async, use match_async()")

        future = self._get_executor().submit(self._lookup, store, key)
        deadline = None if self._timeout is None else time.monotonic() + self._timeout

        while True:
            if cancel_event is not None and cancel_event.is_set():
                self._abandon(future)
                logger.info(f"Lookup cancelled: {key}")
                raise LookupCancelledError(key)

            poll = self.POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._abandon(future)
                    logger.warning(f"Lookup timed out after {self._timeout}s: {key}")
                    raise LookupTimeoutError(key, self._timeout)
                poll = min(poll, remaining)

            done, _ = wait([future], timeout=poll)
            if done:
                break

        records = self._unwrap(future, key)
        return self.decide(code, records)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1,
                    thread_name_prefix="order-lookup"
                )
            return self._executor

    def _abandon(self, future: Future) -> None:
        """Drop a worker stuck on a slow lookup."""
        if future.cancel():
            return
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

    @staticmethod
    def _unwrap(future: Future, key: str) -> List[OrderRecord]:
        try:
            return future.result()
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Order store failed for {key}: {e}")
            raise StoreUnavailableError(key, str(e)) from e

    # =========================================================================
    # ASYNC MATCHING
    # =========================================================================

    async def match_async(
        self,
        code: ValidatedCode,
        store: Any,
        cancel_event: Optional[threading.Event] = None
    ) -> MatchResult:
        """
        Async variant of match().

        Coroutine stores are awaited directly; sync stores run in a worker
        thread. Same bounds, same errors.
        """
        key = code.normalized_payload
        try:
            lookup = self._lookup_method(store)
        except TypeError as e:
            raise StoreUnavailableError(key, str(e)) from e

        if inspect.iscoroutinefunction(lookup):
            task = asyncio.ensure_future(self._lookup_async(store, key))
        else:
            task = asyncio.ensure_future(asyncio.to_thread(self._lookup, store, key))

        loop = asyncio.get_running_loop()
        deadline = None if self._timeout is None else loop.time() + self._timeout

        while True:
            if cancel_event is not None and cancel_event.is_set():
                task.cancel()
                logger.info(f"Lookup cancelled: {key}")
                raise LookupCancelledError(key)

            poll = self.POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    task.cancel()
                    logger.warning(f"Lookup timed out after {self._timeout}s: {key}")
                    raise LookupTimeoutError(key, self._timeout)
                poll = min(poll, remaining)

            done, _ = await asyncio.wait({task}, timeout=poll)
            if done:
                break

        try:
            records = task.result()
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Order store failed for {key}: {e}")
            raise StoreUnavailableError(key, str(e)) from e

        return self.decide(code, records)

    # =========================================================================
    # LOOKUP HELPERS
    # =========================================================================

    @staticmethod
    def _lookup_method(store: Any):
        lookup = getattr(store, "find_all", None) or getattr(store, "get", None)
        if lookup is None:
            raise TypeError(f"{type(store).__name__} has no find_all() or get()")
        return lookup

    @classmethod
    def _lookup(cls, store: Any, key: str) -> List[OrderRecord]:
        return cls.normalize_lookup(cls._lookup_method(store)(key))

    @classmethod
    async def _lookup_async(cls, store: Any, key: str) -> List[OrderRecord]:
        return cls.normalize_lookup(await cls._lookup_method(store)(key))

    @staticmethod
    def normalize_lookup(value: Any) -> List[OrderRecord]:
        """
        Coerce a store answer to a list of records.

        Accepts None, a single OrderRecord or a sequence of records.
        """
        if value is None:
            return []
        if isinstance(value, OrderRecord):
            return [value]
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            return list(value)
        raise TypeError(f"Unexpected order store answer: {type(value).__name__}")

    @staticmethod
    def decide(code: ValidatedCode, records: List[OrderRecord]) -> MatchResult:
        """
        Classify lookup records into one MatchResult.

        Records are de-duplicated by reference before counting.
        """
        distinct = {}
        for record in records:
            distinct.setdefault(record.reference, record)

        if not distinct:
            logger.info(f"No order for {code.code_type} {code.normalized_payload}")
            return MatchResult.not_found(code)

        if len(distinct) == 1:
            order = next(iter(distinct.values()))
            logger.info(f"Matched {code.normalized_payload} -> {order.reference}")
            return MatchResult.ok(code, order)

        candidates = sorted(distinct)
        logger.warning(f"Ambiguous match for {code.normalized_payload}: {candidates}")
        return MatchResult.ambiguous(code, candidates)

    def close(self) -> None:
        """Shut down the lookup worker."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

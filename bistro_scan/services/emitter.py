"""
==============================================================================
Result Emitter Module
==============================================================================

Seam between a scan session and whatever shows its outcome.

A session emits:
- emit_result(result): once per completed scan
- emit_error(error): for validation and match failures

Decode failures are never emitted; the session keeps scanning silently.

==============================================================================
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List

from bistro_scan.core.exceptions import AppException
from bistro_scan.orders.models import MatchResult


class ResultEmitter:
    """No-op emitter. Subclass and override what you need."""

    def emit_result(self, result: MatchResult) -> None:
        pass

    def emit_error(self, error: AppException) -> None:
        pass


class CollectingEmitter(ResultEmitter):
    """
    Emitter that buffers events as JSON-ready messages.

    Errors may be emitted from the decode worker thread, so the buffer is
    locked.

    Example:
        >>> emitter = CollectingEmitter()
        >>> session = ScanSession(..., emitter=emitter)
        >>> session.process_frame(frame)
        >>> emitter.drain()
        [{'type': 'match', 'result': {...}}]
    """

    def __init__(self) -> None:
        self.results: List[MatchResult] = []
        self.errors: List[AppException] = []
        self._pending: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit_result(self, result: MatchResult) -> None:
        with self._lock:
            self.results.append(result)
            self._pending.append({"type": "match", "result": result.to_dict()})

    def emit_error(self, error: AppException) -> None:
        with self._lock:
            self.errors.append(error)
            self._pending.append({"type": "error", "error": error.to_dict()["error"]})

    def drain(self) -> List[Dict[str, Any]]:
        """Return and clear the messages emitted since the last drain."""
        with self._lock:
            pending, self._pending = self._pending, []
        return pending

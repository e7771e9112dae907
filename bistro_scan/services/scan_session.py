"""
==============================================================================
Scan Session Module
==============================================================================

Per-session scan pipeline: decode -> validate -> match.

State Machine:
-------------
                  ┌───────────── per-frame recoverable ─────────────┐
                  ▼                                                  │
┌──────┐      ┌──────────┐      ┌────────────┐      ┌──────────┐   ┌──────┐
│ IDLE │ ───▶ │ DECODING │ ───▶ │ VALIDATING │ ───▶ │ MATCHING │ ─▶│ DONE │
└──────┘      └──────────┘      └────────────┘      └──────────┘   └──────┘
    │               │                 │                   │
    └───────────────┴─────────────────┴───────────────────┴──▶ FAILED

Frame Outcomes:
--------------
- No symbol: back to IDLE, returns None
- InvalidFrameError / DecodeTimeoutError: back to IDLE, re-raised, silent
- ValidationError / LookupTimeoutError: back to IDLE, emitted, re-raised
- Validated code: one MatchResult, DONE, emitted
- Store failure, cancellation, anything unexpected: FAILED, emitted, re-raised

Every session owns its decoder, validator and matcher; nothing mutable is
shared between sessions. Skipping frames while one is in flight is the
caller's job.

==============================================================================
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
import uuid
from typing import Any, Dict, FrozenSet, List, Optional

from bistro_scan.core.exceptions import (
    AppException,
    DecodeTimeoutError,
    InvalidFrameError,
    InvalidTransitionError,
    LookupTimeoutError,
    SessionClosedError,
    ValidationError,
    internal_error,
)
from bistro_scan.orders.matcher import OrderMatcher
from bistro_scan.orders.models import MatchResult
from bistro_scan.scanner.core import BarcodeDecoder
from bistro_scan.scanner.frame import RawFrame
from bistro_scan.scanner.models import ValidatedCode
from bistro_scan.utils.validators import CodeValidator

from .emitter import ResultEmitter


# Module logger
logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    """Scan session state."""

    IDLE = "idle"
    DECODING = "decoding"
    VALIDATING = "validating"
    MATCHING = "matching"
    DONE = "done"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.DONE, SessionState.FAILED)


TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.DECODING, SessionState.FAILED}),
    SessionState.DECODING: frozenset({
        SessionState.VALIDATING, SessionState.IDLE, SessionState.FAILED,
    }),
    SessionState.VALIDATING: frozenset({
        SessionState.MATCHING, SessionState.IDLE, SessionState.FAILED,
    }),
    SessionState.MATCHING: frozenset({
        SessionState.DONE, SessionState.IDLE, SessionState.FAILED,
    }),
    SessionState.DONE: frozenset(),
    SessionState.FAILED: frozenset(),
}


def can_transition(current: SessionState, target: SessionState) -> bool:
    """Check a move against the transition table."""
    return target in TRANSITIONS[current]


class ScanSession:
    """
    One scan, from the first frame to a match result.

    Attributes:
        session_id: Identifier used in logs and summaries
        state: Current SessionState
        result: MatchResult once DONE
        history: States visited, starting with IDLE
        frames_processed: Frames that went through process_frame

    Example:
        >>> session = ScanSession(decoder, validator, matcher, store)
        >>> session.process_frame(frame)
        MatchResult(found=True, reason=<MatchReason.OK: 'ok'>, ...)
        >>> session.state
        <SessionState.DONE: 'done'>
    """

    def __init__(
        self,
        decoder: BarcodeDecoder,
        validator: CodeValidator,
        matcher: OrderMatcher,
        store: Any,
        emitter: Optional[ResultEmitter] = None,
        session_id: Optional[str] = None
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._decoder = decoder
        self._validator = validator
        self._matcher = matcher
        self._store = store
        self._emitter = emitter or ResultEmitter()

        self._state = SessionState.IDLE
        self._history: List[SessionState] = [SessionState.IDLE]
        self._result: Optional[MatchResult] = None
        self._error: Optional[BaseException] = None
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self.frames_processed = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def result(self) -> Optional[MatchResult]:
        return self._result

    @property
    def error(self) -> Optional[BaseException]:
        """Error that failed the session, if any."""
        return self._error

    @property
    def history(self) -> List[SessionState]:
        return list(self._history)

    @property
    def is_closed(self) -> bool:
        return self._state.is_terminal

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # =========================================================================
    # STATE MANAGEMENT
    # =========================================================================

    def _transition(self, target: SessionState) -> None:
        with self._lock:
            if self._state == SessionState.FAILED and self._cancel_event.is_set():
                raise SessionClosedError(self._state.value)
            if not can_transition(self._state, target):
                raise InvalidTransitionError(self._state.value, target.value)
            logger.debug(f"[{self.session_id}] {self._state} -> {target}")
            self._state = target
            self._history.append(target)

    def _reset(self) -> None:
        """Return to IDLE after a per-frame recoverable outcome."""
        self._transition(SessionState.IDLE)

    def _fail(self, error: BaseException) -> None:
        with self._lock:
            self._error = self._error or error
            if self._state != SessionState.FAILED:
                logger.debug(f"[{self.session_id}] {self._state} -> failed")
                self._state = SessionState.FAILED
                self._history.append(SessionState.FAILED)

        if isinstance(error, AppException):
            self._emitter.emit_error(error)
        else:
            self._emitter.emit_error(internal_error(f"Scan failed: {error}"))
        logger.error(f"[{self.session_id}] Session failed: {error}")

    def _ensure_open(self) -> None:
        if self._state.is_terminal:
            raise SessionClosedError(self._state.value)

    def cancel(self) -> None:
        """
        Cancel the session.

        Sets the cancellation event seen by an in-flight lookup and moves a
        non-terminal session to FAILED. Cancelling a closed session does
        nothing.
        """
        self._cancel_event.set()
        with self._lock:
            if self._state.is_terminal:
                return
            self._state = SessionState.FAILED
            self._history.append(SessionState.FAILED)
        logger.info(f"[{self.session_id}] Session cancelled")

    def close(self) -> None:
        """Release the matcher's lookup worker."""
        self._matcher.close()

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def process_frame(self, frame: RawFrame) -> Optional[MatchResult]:
        """
        Run one frame through the pipeline.

        Args:
            frame: Camera frame

        Returns:
            MatchResult when a code was matched, None when the frame held
            no symbol

        Raises:
            SessionClosedError: Session already DONE or FAILED
            InvalidFrameError, DecodeTimeoutError: Frame dropped
            ValidationError, LookupTimeoutError: Code dropped
            StoreUnavailableError, LookupCancelledError: Session FAILED
        """
        code = self._decode_and_validate(frame)
        if code is None:
            return None

        try:
            result = self._matcher.match(code, self._store, self._cancel_event)
        except Exception as e:
            self._on_match_error(e)
            raise

        return self._complete(result)

    async def process_frame_async(self, frame: RawFrame) -> Optional[MatchResult]:
        """
        Async variant of process_frame().

        Decode and validation run in a worker thread; the lookup goes
        through match_async.
        """
        code = await asyncio.to_thread(self._decode_and_validate, frame)
        if code is None:
            return None

        try:
            result = await self._matcher.match_async(code, self._store, self._cancel_event)
        except Exception as e:
            self._on_match_error(e)
            raise

        return self._complete(result)

    def _decode_and_validate(self, frame: RawFrame) -> Optional[ValidatedCode]:
        self._ensure_open()
        self.frames_processed += 1
        self._transition(SessionState.DECODING)

        try:
            symbols = list(self._decoder.decode(frame))
        except (InvalidFrameError, DecodeTimeoutError) as e:
            logger.debug(f"[{self.session_id}] Frame dropped: {e.message}")
            self._reset()
            raise
        except Exception as e:
            self._fail(e)
            raise

        if not symbols:
            self._reset()
            return None

        self._transition(SessionState.VALIDATING)

        first_error: Optional[ValidationError] = None
        for symbol in symbols:
            try:
                code = self._validator.validate(symbol)
            except ValidationError as e:
                first_error = first_error or e
                continue
            except Exception as e:
                self._fail(e)
                raise
            self._transition(SessionState.MATCHING)
            return code

        logger.info(f"[{self.session_id}] Rejected code: {first_error.message}")
        self._reset()
        self._emitter.emit_error(first_error)
        raise first_error

    def _on_match_error(self, error: Exception) -> None:
        if isinstance(error, LookupTimeoutError):
            self._reset()
            self._emitter.emit_error(error)
            return
        self._fail(error)

    def _complete(self, result: MatchResult) -> MatchResult:
        self._transition(SessionState.DONE)
        self._result = result
        self._emitter.emit_result(result)
        logger.info(f"[{self.session_id}] Scan done: {result.reason}")
        return result

    def summary(self) -> Dict[str, Any]:
        """Session summary for logs and WebSocket replies."""
        return {
            "session_id": self.session_id,
            "state": self._state.value,
            "frames_processed": self.frames_processed,
            "result": self._result.to_dict() if self._result else None,
        }

    def __repr__(self) -> str:
        return f"ScanSession(id={self.session_id!r}, state={self._state.value!r})"

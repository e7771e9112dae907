"""
==============================================================================
Scan Service Module
==============================================================================

Builds scan pipelines from settings and runs stateless scans.

This module implements:
- ScanService.new_session: a ScanSession with its own decoder, validator
  and matcher
- ScanService.scan_image: every symbol of a still image, validated and
  matched independently
- ScanService.scan_code: a single typed or wedge-scanned payload

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from bistro_scan.config import Settings, get_settings
from bistro_scan.core.exceptions import (
    LookupTimeoutError,
    ValidationError,
)
from bistro_scan.orders.matcher import OrderMatcher
from bistro_scan.orders.models import MatchResult
from bistro_scan.scanner.core import BarcodeDecoder
from bistro_scan.scanner.frame import RawFrame
from bistro_scan.scanner.models import DecodedSymbol
from bistro_scan.scanner.symbology import Symbology
from bistro_scan.schemas.scan import SymbolOutcome
from bistro_scan.utils.scan_logger import ScanLogger
from bistro_scan.utils.validators import CodeValidator

from .emitter import ResultEmitter
from .scan_session import ScanSession


# Module logger
logger = logging.getLogger(__name__)


class ScanService:
    """
    Factory and runner for scan pipelines.

    Attributes:
        _store: Order store every pipeline reads from
        _settings: Application settings
        _scan_logger: Audit trail writer

    Example:
        >>> service = ScanService(store)
        >>> session = service.new_session()
        >>> service.scan_code("123456").reason
        <MatchReason.OK: 'ok'>
    """

    def __init__(
        self,
        store: Any,
        settings: Optional[Settings] = None,
        scan_logger: Optional[ScanLogger] = None
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._scan_logger = scan_logger or ScanLogger()

    @property
    def store(self) -> Any:
        return self._store

    @property
    def scan_logger(self) -> ScanLogger:
        return self._scan_logger

    # =========================================================================
    # PIPELINE FACTORIES
    # =========================================================================

    def build_decoder(self, multi_symbol: Optional[bool] = None) -> BarcodeDecoder:
        decoder = BarcodeDecoder.from_settings(self._settings)
        if multi_symbol is None or multi_symbol == decoder.multi_symbol:
            return decoder
        return BarcodeDecoder(
            symbologies=decoder.symbologies,
            multi_symbol=multi_symbol,
            timeout_seconds=decoder.timeout_seconds,
        )

    def build_validator(self) -> CodeValidator:
        return CodeValidator.from_settings(self._settings)

    def build_matcher(self) -> OrderMatcher:
        return OrderMatcher.from_settings(self._settings)

    def new_session(
        self,
        emitter: Optional[ResultEmitter] = None,
        session_id: Optional[str] = None
    ) -> ScanSession:
        """Create a session that owns fresh pipeline components."""
        session = ScanSession(
            decoder=self.build_decoder(),
            validator=self.build_validator(),
            matcher=self.build_matcher(),
            store=self._store,
            emitter=emitter,
            session_id=session_id,
        )
        logger.debug(f"New scan session {session.session_id}")
        return session

    # =========================================================================
    # STATELESS SCANS
    # =========================================================================

    def scan_image(self, image: bytes) -> List[SymbolOutcome]:
        """
        Decode every symbol in a still image and match each one.

        Validation failures and lookup timeouts are reported per symbol.

        Args:
            image: Encoded image file (PNG, JPEG, ...)

        Returns:
            One SymbolOutcome per decoded symbol (empty when none)

        Raises:
            InvalidFrameError: Image cannot be decoded
            DecodeTimeoutError: Decode budget exceeded
            StoreUnavailableError: Order store failed
        """
        frame = RawFrame.from_image_bytes(image)
        symbols = self.build_decoder(multi_symbol=True).decode_all(frame)
        validator = self.build_validator()
        matcher = self.build_matcher()

        outcomes: List[SymbolOutcome] = []
        try:
            for symbol in symbols:
                outcomes.append(self._scan_symbol(symbol, validator, matcher))
        finally:
            matcher.close()

        logger.info(f"Image scan: {len(symbols)} symbols")
        return outcomes

    def _scan_symbol(
        self,
        symbol: DecodedSymbol,
        validator: CodeValidator,
        matcher: OrderMatcher
    ) -> SymbolOutcome:
        outcome = SymbolOutcome(
            payload=symbol.text,
            symbology=symbol.symbology,
            confidence=symbol.confidence,
        )
        try:
            code = validator.validate(symbol)
            result = matcher.match(code, self._store)
        except (ValidationError, LookupTimeoutError) as e:
            outcome.error = e.to_dict()["error"]
            return outcome

        self._scan_logger.log_result(result, source="image")
        outcome.result = result.to_dict()
        return outcome

    def scan_code(self, payload: str, symbology: Symbology = Symbology.CODE128) -> MatchResult:
        """
        Validate and match a payload that skipped the decoder.

        Raises:
            ValidationError: Payload rejected
            LookupTimeoutError, StoreUnavailableError: Store trouble
        """
        symbol = DecodedSymbol(payload=payload.encode("utf-8"), symbology=symbology)
        code = self.build_validator().validate(symbol)

        matcher = self.build_matcher()
        try:
            result = matcher.match(code, self._store)
        finally:
            matcher.close()

        self._scan_logger.log_result(result, source="manual")
        return result

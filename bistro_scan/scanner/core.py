"""
==============================================================================
Barcode Decoder Core Module
==============================================================================

Frame decoder trying each enabled symbology in a fixed priority order.

Features:
---------
- Lazy symbol iteration (a fresh iterator per decode call)
- QR first, then 1D formats, with an OpenCV QR fallback behind zbar
- First-hit or multi-symbol scanning
- Per-frame time budget checked before and after every decode attempt
- Blank frames short-circuit to an empty result

==============================================================================
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

import numpy as np

from bistro_scan.config import Settings
from bistro_scan.core.exceptions import DecodeTimeoutError

from .frame import RawFrame
from .models import DecodedSymbol
from .symbology import DEFAULT_PRIORITY, STRATEGIES, Symbology, run_strategy


# Module logger
logger = logging.getLogger(__name__)


class BarcodeDecoder:
    """
    Converts raw frames into decoded symbols.

    The decoder holds configuration only, so one instance can serve any
    number of sequential decode calls. It performs no I/O.

    Attributes:
        symbologies: Enabled symbologies in priority order
        multi_symbol: Yield every symbol instead of the first
        timeout_seconds: Time budget per decode call (None = unbounded)

    Example:
        >>> decoder = BarcodeDecoder(timeout_seconds=0.25)
        >>> for symbol in decoder.decode(RawFrame.from_array(frame)):
        ...     print(symbol.symbology, symbol.text)
    """

    # Frames whose gray range is at most this are treated as blank
    BLANK_RANGE = 8

    def __init__(
        self,
        symbologies: Optional[Iterable[Symbology]] = None,
        multi_symbol: bool = False,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Initialize decoder.

        Args:
            symbologies: Symbologies to try (default: all); priority order is fixed
            multi_symbol: If True, keep scanning after the first hit
            timeout_seconds: Decode time budget per call
            clock: Monotonic clock, injectable for tests
        """
        enabled = set(symbologies) if symbologies is not None else set(DEFAULT_PRIORITY)
        self._symbologies: Tuple[Symbology, ...] = tuple(
            s for s in DEFAULT_PRIORITY if s in enabled
        )
        self._multi_symbol = multi_symbol
        self._timeout = timeout_seconds
        self._clock = clock

        logger.debug(
            f"Decoder created ({len(self._symbologies)} symbologies, "
            f"multi={multi_symbol}, budget={timeout_seconds})"
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "BarcodeDecoder":
        """Build a decoder from application settings."""
        return cls(
            symbologies=[Symbology.parse(name) for name in settings.symbology_list],
            multi_symbol=settings.multi_symbol,
            timeout_seconds=settings.decode_timeout_seconds,
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def symbologies(self) -> Tuple[Symbology, ...]:
        """Enabled symbologies in priority order."""
        return self._symbologies

    @property
    def multi_symbol(self) -> bool:
        """Check if the decoder reports every symbol."""
        return self._multi_symbol

    @property
    def timeout_seconds(self) -> Optional[float]:
        """Time budget per decode call."""
        return self._timeout

    # =========================================================================
    # DECODING
    # =========================================================================

    def decode(self, frame: RawFrame) -> Iterator[DecodedSymbol]:
        """
        Decode symbols from a frame.

        Frame checks run now; decoding runs as the iterator is consumed.

        Args:
            frame: Frame to decode

        Returns:
            Lazy iterator of DecodedSymbol (empty when nothing is found)

        Raises:
            InvalidFrameError: Bad dimensions, format or buffer (at call time)
            DecodeTimeoutError: Budget exceeded (while iterating)
        """
        gray = frame.to_gray()
        return self._iter_symbols(gray)

    def decode_all(self, frame: RawFrame) -> List[DecodedSymbol]:
        """Decode a frame and collect every symbol into a list."""
        return list(self.decode(frame))

    def _iter_symbols(self, gray: np.ndarray) -> Iterator[DecodedSymbol]:
        """Walk symbologies and strategies, yielding hits."""
        if self.is_blank(gray):
            logger.debug("Blank frame, skipping decode")
            return

        started = self._clock()
        seen: Set[Tuple[bytes, Symbology]] = set()

        for symbology in self._symbologies:
            for strategy in STRATEGIES[symbology]:
                self._check_budget(started)

                try:
                    hits = run_strategy(strategy, symbology, gray)
                except Exception as e:
                    logger.warning(f"{strategy} failed for {symbology}: {e}")
                    hits = []

                # Hits from an attempt that overran the budget are dropped
                self._check_budget(started)

                if not hits:
                    continue

                for payload, confidence in hits:
                    if not payload or (payload, symbology) in seen:
                        continue
                    seen.add((payload, symbology))

                    logger.debug(f"Decoded {symbology} via {strategy}: {payload!r}")
                    yield DecodedSymbol(
                        payload=payload,
                        symbology=symbology,
                        confidence=confidence
                    )

                    if not self._multi_symbol:
                        return

                # Later strategies for the same symbology are fallbacks only
                break

    def _check_budget(self, started: float) -> None:
        """Raise DecodeTimeoutError once the budget is spent."""
        if self._timeout is None:
            return

        elapsed = self._clock() - started
        if elapsed >= self._timeout:
            logger.info(f"Decode budget exceeded ({elapsed * 1000:.0f} ms)")
            raise DecodeTimeoutError(self._timeout, elapsed)

    @classmethod
    def is_blank(cls, gray: np.ndarray) -> bool:
        """Check if a gray frame is (nearly) uniform."""
        if gray.size == 0:
            return True
        return int(gray.max()) - int(gray.min()) <= cls.BLANK_RANGE

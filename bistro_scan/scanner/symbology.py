"""
==============================================================================
Symbology Dispatch Module
==============================================================================

Supported barcode symbologies and the decode strategies tried for each.

Each symbology maps to an ordered tuple of DecodeStrategy tags. The decoder
walks that tuple and dispatches every tag through a handler table, so adding
a backend means adding a tag and a handler, not a subclass.

Priority Order:
--------------
QR first, then the 1D formats (CODE128, retail EAN/UPC, CODE39, CODE93,
ITF, CODABAR).

Backends:
--------
- zbar (pyzbar): every symbology
- OpenCV QRCodeDetector: QR fallback when zbar finds nothing

==============================================================================
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np


# Module logger
logger = logging.getLogger(__name__)


class Symbology(str, enum.Enum):
    """
    Barcode symbology enumeration.

    The enum inherits from str to enable JSON serialization.
    """

    QR = "qr"
    CODE128 = "code128"
    EAN13 = "ean13"
    EAN8 = "ean8"
    UPCA = "upca"
    UPCE = "upce"
    CODE39 = "code39"
    CODE93 = "code93"
    ITF = "itf"
    CODABAR = "codabar"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @classmethod
    def parse(cls, name: str) -> "Symbology":
        """
        Resolve a symbology from its value or a zbar type name.

        Args:
            name: e.g. "qr", "QRCODE", "I25", "ean13"

        Returns:
            Matching Symbology

        Raises:
            ValueError: If the name is not recognized
        """
        key = name.strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass

        for symbology, zbar_name in ZBAR_NAMES.items():
            if zbar_name.lower() == key:
                return symbology

        raise ValueError(f"Unknown symbology: {name!r}")


class DecodeStrategy(str, enum.Enum):
    """Decode backend tags used by the dispatch table."""

    ZBAR = "zbar"
    OPENCV_QR = "opencv_qr"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


# =============================================================================
# DISPATCH TABLES
# =============================================================================

DEFAULT_PRIORITY: Tuple[Symbology, ...] = (
    Symbology.QR,
    Symbology.CODE128,
    Symbology.EAN13,
    Symbology.EAN8,
    Symbology.UPCA,
    Symbology.UPCE,
    Symbology.CODE39,
    Symbology.CODE93,
    Symbology.ITF,
    Symbology.CODABAR,
)

ZBAR_NAMES: Dict[Symbology, str] = {
    Symbology.QR: "QRCODE",
    Symbology.CODE128: "CODE128",
    Symbology.EAN13: "EAN13",
    Symbology.EAN8: "EAN8",
    Symbology.UPCA: "UPCA",
    Symbology.UPCE: "UPCE",
    Symbology.CODE39: "CODE39",
    Symbology.CODE93: "CODE93",
    Symbology.ITF: "I25",
    Symbology.CODABAR: "CODABAR",
}

STRATEGIES: Dict[Symbology, Tuple[DecodeStrategy, ...]] = {
    symbology: (DecodeStrategy.ZBAR,) for symbology in DEFAULT_PRIORITY
}
STRATEGIES[Symbology.QR] = (DecodeStrategy.ZBAR, DecodeStrategy.OPENCV_QR)

# (payload, confidence)
Hit = Tuple[bytes, Optional[float]]


def zbar_confidence(quality: Optional[float]) -> Optional[float]:
    """Clamp a zbar quality score to [0, 1]; zero or missing means unknown."""
    if not quality:
        return None
    return min(max(float(quality), 0.0), 1.0)


def _decode_zbar(symbology: Symbology, gray: np.ndarray) -> List[Hit]:
    """Decode one symbology with zbar."""
    from pyzbar.pyzbar import ZBarSymbol, decode

    barcodes = decode(gray, symbols=[ZBarSymbol[ZBAR_NAMES[symbology]]])

    hits: List[Hit] = []
    for barcode in barcodes:
        quality = getattr(barcode, "quality", None)
        hits.append((bytes(barcode.data), zbar_confidence(quality)))
    return hits


def _decode_opencv_qr(symbology: Symbology, gray: np.ndarray) -> List[Hit]:
    """Decode a QR code with OpenCV's detector."""
    detector = cv2.QRCodeDetector()
    text, _, _ = detector.detectAndDecode(gray)
    if not text:
        return []
    return [(text.encode("utf-8"), None)]


HANDLERS: Dict[DecodeStrategy, Callable[[Symbology, np.ndarray], List[Hit]]] = {
    DecodeStrategy.ZBAR: _decode_zbar,
    DecodeStrategy.OPENCV_QR: _decode_opencv_qr,
}


def run_strategy(
    strategy: DecodeStrategy,
    symbology: Symbology,
    gray: np.ndarray
) -> List[Hit]:
    """
    Dispatch one decode attempt.

    Args:
        strategy: Backend tag
        symbology: Symbology to look for
        gray: Single-channel uint8 image

    Returns:
        Hits found by the backend (possibly empty)
    """
    return HANDLERS[strategy](symbology, gray)

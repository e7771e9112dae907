"""
==============================================================================
Scanner Package - Barcode Decoding
==============================================================================

Barcode decoding with OpenCV and pyzbar.

Classes:
--------
- RawFrame / PixelFormat: Frame source buffers
- BarcodeDecoder: Priority-ordered symbology decoder
- DecodedSymbol / ValidatedCode / CodeType: Pipeline models
- Symbology / DecodeStrategy: Dispatch tags

==============================================================================
"""

from .core import BarcodeDecoder
from .frame import PixelFormat, RawFrame
from .models import CodeType, DecodedSymbol, ValidatedCode
from .symbology import DecodeStrategy, Symbology

__all__ = [
    "BarcodeDecoder",
    "PixelFormat",
    "RawFrame",
    "CodeType",
    "DecodedSymbol",
    "ValidatedCode",
    "DecodeStrategy",
    "Symbology",
]

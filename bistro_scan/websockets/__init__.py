"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for barcode scanning.

Handlers:
---------
- scanner: Live scan sessions (decode, validate, match)

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]

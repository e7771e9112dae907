"""
==============================================================================
Core Package
==============================================================================

Exception taxonomy shared by the scan pipeline and the HTTP layer.

==============================================================================
"""

from .exceptions import (
    AppException,
    InvalidFrameError,
    DecodeTimeoutError,
    ValidationError,
    LookupTimeoutError,
    LookupCancelledError,
    StoreUnavailableError,
    InvalidTransitionError,
    SessionClosedError,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "InvalidFrameError",
    "DecodeTimeoutError",
    "ValidationError",
    "LookupTimeoutError",
    "LookupCancelledError",
    "StoreUnavailableError",
    "InvalidTransitionError",
    "SessionClosedError",
    "register_exception_handlers",
]

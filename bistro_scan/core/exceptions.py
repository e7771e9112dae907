"""
Application Exception Handling

AppException is the root of every scan and order error, with FastAPI integration.
Subclasses name the scan pipeline failures so callers can catch them by type.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the entire API.

    Usage:
        raise AppException("Order not found", "ORDER_NOT_FOUND", 404)
        raise ValidationError("Payload matches no known code format")

    Error Codes:
        Scan pipeline:
            - INVALID_FRAME (422)
            - DECODE_TIMEOUT (408, retryable)
            - CODE_INVALID (422)
            - STORE_TIMEOUT (504, retryable)
            - LOOKUP_CANCELLED (409)
            - STORE_UNAVAILABLE (503)

        Session:
            - INVALID_TRANSITION (409)
            - SESSION_CLOSED (409)

        Orders:
            - ORDER_NOT_FOUND (404)
            - ORDER_EXISTS (409)
            - INVALID_STATUS (400)

        General:
            - INVALID_IMAGE (400)
            - INTERNAL_ERROR (500)
    """

    # Whether the caller may retry with the next frame or lookup
    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "ORDER_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "retryable": self.retryable,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


# ============================================
# SCAN PIPELINE ERRORS
# ============================================

class InvalidFrameError(AppException):
    """Frame has zero dimensions, an unsupported format or a bad buffer."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_FRAME", 422, details)


class DecodeTimeoutError(AppException):
    """Decoding a frame exceeded its time budget."""

    retryable = True

    def __init__(self, budget_seconds: float, elapsed_seconds: float):
        super().__init__(
            f"Decode exceeded {budget_seconds * 1000:.0f} ms budget",
            "DECODE_TIMEOUT",
            408,
            {
                "budget_ms": round(budget_seconds * 1000, 1),
                "elapsed_ms": round(elapsed_seconds * 1000, 1),
            }
        )


class ValidationError(AppException):
    """Decoded payload is empty or matches no accepted code format."""

    def __init__(self, message: str, payload: Optional[str] = None):
        details = {"payload": payload} if payload is not None else {}
        super().__init__(message, "CODE_INVALID", 422, details)


class LookupTimeoutError(AppException):
    """Order store did not answer within the lookup bound."""

    retryable = True

    def __init__(self, key: str, timeout_seconds: float):
        super().__init__(
            f"Order lookup for '{key}' timed out after {timeout_seconds:g}s",
            "STORE_TIMEOUT",
            504,
            {"key": key, "timeout_seconds": timeout_seconds}
        )


class LookupCancelledError(AppException):
    """Order lookup was cancelled by the caller."""

    def __init__(self, key: str):
        super().__init__(
            f"Order lookup for '{key}' was cancelled",
            "LOOKUP_CANCELLED",
            409,
            {"key": key}
        )


class StoreUnavailableError(AppException):
    """Order store raised while serving a lookup."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            "Order store unavailable",
            "STORE_UNAVAILABLE",
            503,
            {"key": key, "reason": reason}
        )


# ============================================
# SESSION ERRORS
# ============================================

class InvalidTransitionError(AppException):
    """Scan session was asked to move along an edge not in its table."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Invalid session transition: {current} -> {target}",
            "INVALID_TRANSITION",
            409,
            {"current_state": current, "target_state": target}
        )


class SessionClosedError(AppException):
    """Scan session already reached DONE or FAILED."""

    def __init__(self, state: str):
        super().__init__(
            f"Scan session is closed (state: {state})",
            "SESSION_CLOSED",
            409,
            {"state": state}
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def order_not_found(order_key: Optional[str] = None) -> AppException:
    """Create order not found exception."""
    details = {"order_key": order_key} if order_key else {}
    return AppException("Order not found", "ORDER_NOT_FOUND", 404, details)


def order_exists(order_key: str) -> AppException:
    """Create order already exists exception."""
    return AppException(
        f"Order '{order_key}' already exists",
        "ORDER_EXISTS",
        409,
        {"order_key": order_key}
    )


def invalid_status(current: str, expected: str) -> AppException:
    """Create invalid order status exception."""
    return AppException(
        f"Invalid order status. Current: {current}, Expected: {expected}",
        "INVALID_STATUS",
        400,
        {"current_status": current, "expected_status": expected}
    )


def invalid_image(reason: str) -> AppException:
    """Create undecodable image exception."""
    return AppException(
        f"Could not read image: {reason}",
        "INVALID_IMAGE",
        400,
        {"reason": reason}
    )


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)

"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

Service classes between the API layer and the scan pipeline / database.

This package provides:
- ScanSession / SessionState: Per-session decode -> validate -> match
- ResultEmitter / CollectingEmitter: Outcome delivery seam
- ScanService: Pipeline factory and stateless scans
- OrderService: Order CRUD and hand-off

    ┌─────────────────┐
    │ API / WebSocket │
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │    Service      │  ← Business Logic
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │ Pipeline / ORM  │
    └─────────────────┘

==============================================================================
"""

from .emitter import CollectingEmitter, ResultEmitter
from .scan_session import TRANSITIONS, ScanSession, SessionState, can_transition
from .scan_service import ScanService
from .order_service import OrderService

__all__ = [
    "CollectingEmitter",
    "ResultEmitter",
    "TRANSITIONS",
    "ScanSession",
    "SessionState",
    "can_transition",
    "ScanService",
    "OrderService",
]

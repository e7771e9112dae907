"""
==============================================================================
Scan Logger Module
==============================================================================

Audit trail of completed scans.

File Format:
-----------
One JSON object per line in scans_{YYYY-MM-DD}.jsonl:

    {"timestamp": "2025-01-15T10:30:45", "source": "websocket",
     "session_id": "3f2a...", "payload": "123456", "code_type": "order_id",
     "found": true, "reason": "ok", "reference": "ORD-123456",
     "candidates": []}

==============================================================================
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from bistro_scan.config import get_settings
from bistro_scan.orders.models import MatchResult


# Module logger
logger = logging.getLogger(__name__)


class ScanLogger:
    """
    Append-only JSON lines writer for match results.

    Attributes:
        _log_dir: Directory for log files
        _enabled: When False, log_result() is a no-op

    Example:
        >>> scan_logger = ScanLogger()
        >>> scan_logger.log_result(result, source="rest")
        'storage/logs/scans_2025-01-15.jsonl'
    """

    def __init__(self, log_dir: Optional[Path] = None, enabled: Optional[bool] = None) -> None:
        """
        Initialize the scan logger.

        Args:
            log_dir: Custom log directory (uses settings if None)
            enabled: Override settings.scan_log_enabled
        """
        settings = get_settings()
        self._log_dir = Path(log_dir) if log_dir else settings.log_path
        self._enabled = settings.scan_log_enabled if enabled is None else enabled
        self._lock = threading.Lock()
        if self._enabled:
            self._log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def path_for(self, when: datetime) -> Path:
        """Log file for a given day."""
        return self._log_dir / f"scans_{when.strftime('%Y-%m-%d')}.jsonl"

    def log_result(
        self,
        result: MatchResult,
        source: str = "unknown",
        session_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Append one match result.

        Args:
            result: Completed match
            source: Where the scan came from (websocket, rest, ...)
            session_id: Scan session, if any

        Returns:
            Path of the log file written, None when disabled
        """
        if not self._enabled:
            return None

        now = datetime.utcnow()
        entry = self._format_entry(result, now, source, session_id)
        filepath = self.path_for(now)

        with self._lock:
            with open(filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")

        logger.debug(f"Logged scan {entry['payload']} to {filepath}")
        return str(filepath)

    @staticmethod
    def _format_entry(
        result: MatchResult,
        when: datetime,
        source: str,
        session_id: Optional[str]
    ) -> Dict[str, Any]:
        return {
            "timestamp": when.strftime("%Y-%m-%dT%H:%M:%S"),
            "source": source,
            "session_id": session_id,
            "payload": result.code.normalized_payload,
            "code_type": result.code.code_type.value,
            "found": result.found,
            "reason": result.reason.value,
            "reference": result.order.reference if result.order else None,
            "candidates": list(result.candidates),
        }

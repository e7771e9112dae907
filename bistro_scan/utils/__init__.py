"""
==============================================================================
Utilities Package
==============================================================================

Utility classes for the application.

Modules:
--------
- validators: Decoded payload validation (order IDs, SKUs, GTINs)
- scan_logger: JSON lines audit trail of completed scans

==============================================================================
"""

from .validators import CodeValidator, GTINValidator
from .scan_logger import ScanLogger

__all__ = [
    "CodeValidator",
    "GTINValidator",
    "ScanLogger",
]

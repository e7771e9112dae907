"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- orders: Order creation, lookup and hand-off
- scan: Still image and manual code scans

==============================================================================
"""

from . import health, orders, scan

__all__ = ["health", "orders", "scan"]

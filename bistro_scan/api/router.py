"""
==============================================================================
API Router
==============================================================================

Versioned REST routes. The live scanning WebSocket is mounted separately
by main.py since it lives outside /api/v1.

==============================================================================
"""

from fastapi import APIRouter

from bistro_scan.api.v1 import health, orders, scan


API_V1_PREFIX = "/api/v1"

V1_ROUTERS = (health.router, orders.router, scan.router)


def build_api_router() -> APIRouter:
    """Collect the v1 routers under /api/v1."""
    router = APIRouter(prefix=API_V1_PREFIX)
    for sub_router in V1_ROUTERS:
        router.include_router(sub_router)
    return router


api_router = build_api_router()

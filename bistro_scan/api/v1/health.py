"""
==============================================================================
Health Check Endpoints
==============================================================================

Service status for monitoring and container probes.

    GET /health        database, decode backends and order counts
    GET /health/ready  503 until the order database answers
    GET /health/live   process is up

==============================================================================
"""

import importlib.util
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, text
from sqlalchemy.orm import Session

from bistro_scan.config import get_settings
from bistro_scan.db.database import get_db
from bistro_scan.db.models import Order


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Collects the status of the scan service's dependencies."""

    def __init__(self, db: Session):
        self._db = db

    def database_ok(self) -> bool:
        try:
            self._db.execute(text("SELECT 1"))
        except Exception:
            return False
        return True

    def orders_by_status(self) -> Dict[str, int]:
        """Order counts per status; empty when the table is unreachable."""
        try:
            rows = self._db.query(Order.status, func.count(Order.id)).group_by(Order.status)
            return {status.value: count for status, count in rows}
        except Exception:
            return {}

    @staticmethod
    def decoder_backends() -> Dict[str, str]:
        # The OpenCV QR detector ships with opencv; zbar needs pyzbar and libzbar
        return {
            "opencv_qr": "available",
            "zbar": "available" if importlib.util.find_spec("pyzbar") else "missing",
        }

    def report(self) -> dict:
        database_ok = self.database_ok()
        backends = self.decoder_backends()
        by_status = self.orders_by_status()
        settings = get_settings()

        degraded = not database_ok or "missing" in backends.values()
        return {
            "status": "degraded" if degraded else "healthy",
            "components": {
                "database": "healthy" if database_ok else "unhealthy",
                "decoders": backends,
            },
            "details": {
                "orders_loaded": sum(by_status.values()),
                "orders_by_status": by_status,
                "symbologies": settings.symbology_list,
                "decode_timeout_ms": settings.decode_timeout_ms,
            },
        }


@router.get("")
async def health_check(db: Session = Depends(get_db)):
    """Full status report."""
    return HealthController(db).report()


@router.get("/ready")
async def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe: the order database must answer."""
    if not HealthController(db).database_ok():
        return JSONResponse(status_code=503, content={"ready": False})
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe."""
    return {"alive": True}

"""
==============================================================================
Bistro Scan - Application Entry Point
==============================================================================

Wires the scan pipeline into a FastAPI app:

    /api/v1/health   service and decoder status
    /api/v1/orders   order records and hand-off
    /api/v1/scan     still image and manual code scans
    /ws/scan         live camera frames

Usage:
------
    uvicorn bistro_scan.main:app --reload
    python -m bistro_scan.main

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from bistro_scan import __version__
from bistro_scan.api.router import api_router
from bistro_scan.config import Settings, get_settings
from bistro_scan.core.exceptions import register_exception_handlers
from bistro_scan.db import get_database_manager, init_db
from bistro_scan.websockets import scanner_router


settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)


class Application:
    """
    Builds the FastAPI app and runs its startup and shutdown hooks.

    Startup creates the log and database directories, creates the order
    tables and seeds them from the orders file when empty. Shutdown closes
    pooled database connections.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._app = FastAPI(
            title=settings.app_name,
            version=__version__,
            description="Barcode decoding and order matching for restaurant hand-off",
            lifespan=self._lifespan,
        )
        self._app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        register_exception_handlers(self._app)
        self._app.include_router(api_router)
        self._app.include_router(scanner_router)
        self._app.add_api_route(
            "/", self._docs_redirect, methods=["GET"], include_in_schema=False
        )

    @property
    def app(self) -> FastAPI:
        return self._app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        self._startup()
        yield
        get_database_manager().dispose()
        logger.info("Scan service stopped")

    def _startup(self) -> None:
        self._settings.ensure_directories()
        init_db()

        logger.info(
            f"{self._settings.app_name} {__version__} ready on "
            f"http://{self._settings.host}:{self._settings.port} "
            f"(symbologies: {', '.join(self._settings.symbology_list)}, "
            f"decode budget: {self._settings.decode_timeout_ms}ms)"
        )

    @staticmethod
    async def _docs_redirect():
        return RedirectResponse(url="/docs")


app = Application(settings).app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bistro_scan.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )

"""
==============================================================================
Scan Endpoints
==============================================================================

Stateless scans over REST. Live camera scanning goes through /ws/scan.

Routes are plain functions: order lookups block on the matcher, so FastAPI
runs them in its threadpool.

==============================================================================
"""

from fastapi import APIRouter, Depends

from bistro_scan.core.dependencies import get_scan_service
from bistro_scan.schemas.common import error_responses
from bistro_scan.services.scan_service import ScanService
from bistro_scan.schemas.scan import (
    CodeScanRequest,
    CodeScanResponse,
    ImageScanRequest,
    ImageScanResponse,
)


router = APIRouter(prefix="/scan", tags=["Scan"])


class ScanController:
    """Controller for scan operations."""

    def __init__(self, service: ScanService):
        self._service = service

    def scan_image(self, request: ImageScanRequest) -> ImageScanResponse:
        """Scan every symbol in an image."""
        outcomes = self._service.scan_image(request.image_bytes())
        return ImageScanResponse(symbols=outcomes, count=len(outcomes))

    def scan_code(self, request: CodeScanRequest) -> CodeScanResponse:
        """Match a single payload."""
        result = self._service.scan_code(request.payload, request.symbology)
        return CodeScanResponse(result=result.to_dict())


@router.post(
    "/image",
    response_model=ImageScanResponse,
    responses=error_responses(400, 408, 422, 503)
)
def scan_image(
    request: ImageScanRequest,
    service: ScanService = Depends(get_scan_service)
):
    """
    Decode a base64 image and match every symbol found.

    Codes that fail validation are reported per symbol, not as an error.
    """
    controller = ScanController(service)
    return controller.scan_image(request)


@router.post(
    "/code",
    response_model=CodeScanResponse,
    responses=error_responses(422, 503, 504)
)
def scan_code(
    request: CodeScanRequest,
    service: ScanService = Depends(get_scan_service)
):
    """Validate and match a typed or wedge-scanned payload."""
    controller = ScanController(service)
    return controller.scan_code(request)

"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Live camera scanning via WebSocket connection.

Protocol:
---------
1. Client connects to /ws/scan
2. Client sends frames: {"type": "frame", "frame": "<base64 image>"}
3. Server answers with
   - {"type": "match", ...} when a scan completes
   - {"type": "error", ...} when a code is rejected or a lookup fails
   - an INVALID_MESSAGE error for text that is not a JSON object
4. Client sends {"type": "stop"}; server replies {"type": "summary", ...}
   and closes

Frames that arrive while one is being processed are skipped. Frames that
cannot be decoded are dropped silently. After a match the handler starts a
new session; a failed session ends the connection.

==============================================================================
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from bistro_scan.core.dependencies import get_scan_service
from bistro_scan.core.exceptions import AppException
from bistro_scan.scanner.frame import RawFrame
from bistro_scan.schemas.scan import decode_base64_image
from bistro_scan.services.emitter import CollectingEmitter
from bistro_scan.services.scan_service import ScanService
from bistro_scan.services.scan_session import ScanSession, SessionState


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScannerWebSocketHandler:
    """
    Handler for a live scanning connection.

    Manages the lifecycle of a connection including:
    - Session creation and renewal
    - Frame decoding with backpressure
    - Result and error reporting
    """

    def __init__(self, websocket: WebSocket, service: ScanService):
        self._websocket = websocket
        self._service = service
        self._emitter = CollectingEmitter()
        self._session = self._new_session()
        self._completed: List[Dict[str, Any]] = []
        self._inflight: Optional[asyncio.Task] = None
        self.frames_received = 0
        self.frames_skipped = 0

    def _new_session(self) -> ScanSession:
        return self._service.new_session(emitter=self._emitter)

    @property
    def session(self) -> ScanSession:
        return self._session

    # =========================================================================
    # OUTGOING MESSAGES
    # =========================================================================

    async def send_error(self, message: str, code: str = "ERROR") -> None:
        """Send a protocol error to the client."""
        await self._websocket.send_json({
            "type": "error",
            "error": {"code": code, "message": message, "retryable": False}
        })

    async def flush(self, session: ScanSession) -> None:
        """Send whatever the session emitted since the last flush."""
        for message in self._emitter.drain():
            message["session_id"] = session.session_id
            await self._websocket.send_json(message)

    def summary(self) -> Dict[str, Any]:
        """Connection summary sent on stop."""
        sessions = self._completed + [self._session.summary()]
        return {
            "type": "summary",
            "frames_received": self.frames_received,
            "frames_skipped": self.frames_skipped,
            "sessions": sessions,
            "matches": sum(1 for s in sessions if s["result"] is not None),
        }

    # =========================================================================
    # FRAME HANDLING
    # =========================================================================

    def handle_frame(self, data: dict) -> None:
        """Start processing a frame unless one is already in flight."""
        self.frames_received += 1

        if self._inflight is not None and not self._inflight.done():
            self.frames_skipped += 1
            return

        encoded = data.get("frame")
        if not isinstance(encoded, str):
            logger.debug("Dropped frame message without base64 text")
            return

        try:
            frame = RawFrame.from_image_bytes(decode_base64_image(encoded))
        except (AppException, ValueError) as e:
            logger.debug(f"Dropped undecodable frame: {e}")
            return

        self._inflight = asyncio.ensure_future(self._process(self._session, frame))

    async def _process(self, session: ScanSession, frame: RawFrame) -> None:
        try:
            await session.process_frame_async(frame)
        except AppException as e:
            logger.debug(f"[{session.session_id}] Frame outcome: {e.code}")
        except Exception as e:
            logger.error(f"[{session.session_id}] Frame processing error: {e}")

        await self.flush(session)

        if session.state == SessionState.DONE:
            self._service.scan_logger.log_result(
                session.result, source="websocket", session_id=session.session_id
            )
            self._completed.append(session.summary())
            session.close()
            self._session = self._new_session()

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info("Scanner WebSocket connected")

        receive: Optional[asyncio.Task] = None
        try:
            while True:
                if receive is None:
                    receive = asyncio.ensure_future(self._websocket.receive_json())

                waiting = {receive}
                if self._inflight is not None:
                    waiting.add(self._inflight)

                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if self._inflight is not None and self._inflight in done:
                    self._inflight = None
                    if self._session.state == SessionState.FAILED:
                        logger.warning(f"[{self._session.session_id}] Session failed, closing")
                        break

                if receive not in done:
                    continue

                try:
                    data = receive.result()
                except ValueError as e:
                    await self.send_error(f"Message is not valid JSON: {e}", "INVALID_MESSAGE")
                    continue
                finally:
                    receive = None

                if not isinstance(data, dict):
                    await self.send_error("Message must be a JSON object", "INVALID_MESSAGE")
                    continue

                if data.get("type") == "frame":
                    self.handle_frame(data)
                elif data.get("type") == "stop":
                    logger.info("Client requested stop")
                    if self._inflight is not None:
                        await self._inflight
                        self._inflight = None
                    break
                else:
                    await self.send_error(
                        f"Unknown message type: {data.get('type')!r}", "UNKNOWN_MESSAGE"
                    )

            await self._websocket.send_json(self.summary())
            await self._websocket.close()

        except WebSocketDisconnect:
            logger.info("Client disconnected")
            self._session.cancel()
        finally:
            if receive is not None and not receive.done():
                receive.cancel()
            if self._inflight is not None and not self._inflight.done():
                self._inflight.cancel()
            self._session.close()
            logger.info("Scanner WebSocket closed")


@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    service: ScanService = Depends(get_scan_service)
):
    """Live barcode scanning via WebSocket."""
    handler = ScannerWebSocketHandler(websocket, service)
    await handler.run()

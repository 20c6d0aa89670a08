"""WebSocket endpoint for real-time log streaming.

Endpoint: /ws/logs?min_level=INFO&refresh_ms=1000&after=0

Server → Client (JSON):
    {"status": 0, "records": [{"level": "INFO", "timestamp": 1700000000123,
                               "message": "...", "sequence": 42}], "cursor": 42, "reason": null}
    {"status": 1, "records": [], "cursor": 42, "reason": null}          heartbeat
    {"status": 2, "records": [], "cursor": 42, "reason": "idle"}        terminated
    {"type": "error", "detail": "<why the control frame was rejected>"}

Client → Server (JSON):
    {"min_level": "WARN"}     change the filter; the cursor is kept
    {"refresh_ms": 500}       change the cadence (clamped)
    {"type": "ping"}          keep-alive, resets the idle timer
    {"type": "close"}         end the subscription
"""

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from loggery.config import settings
from loggery.records import Level
from loggery.schemas import ViewerControl
from loggery.viewer import Subscription, TransportClosed, ViewerServer

logger = logging.getLogger(__name__)

router = APIRouter()

# Application close code for bad connect parameters
_CLOSE_BAD_PARAMS = 4400


class WebSocketTransport:
    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws

    async def send(self, payload: dict[str, Any]) -> None:
        try:
            await self._ws.send_text(json.dumps(payload))
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            raise TransportClosed(str(exc)) from exc

    async def close(self, code: int = 1000, reason: str = "") -> None:
        try:
            await self._ws.close(code=code, reason=reason)
        except (RuntimeError, OSError) as exc:
            raise TransportClosed(str(exc)) from exc


def _apply(sub: Subscription, control: ViewerControl) -> bool:
    """Apply one control frame.  Returns False when the viewer asked to close."""
    if control.type == "close":
        return False
    if control.min_level is not None:
        sub.set_min_level(control.min_level)
    if control.refresh_ms is not None:
        sub.set_refresh_ms(control.refresh_ms)
    return True


@router.websocket("/ws/logs")
async def ws_logs(
    ws: WebSocket,
    min_level: str | None = None,
    refresh_ms: int | None = None,
    after: int = 0,
) -> None:
    server: ViewerServer = ws.app.state.viewer_server
    try:
        level = Level.parse(min_level) if min_level else None
    except ValueError as exc:
        await ws.close(code=_CLOSE_BAD_PARAMS, reason=str(exc))
        return

    await ws.accept()
    sub = server.open_subscription(WebSocketTransport(ws), min_level=level, refresh_ms=refresh_ms, after=after)
    closed = sub.start()  # already running; returns its task
    idle = settings.idle_timeout_s or None
    reason = "closed"

    try:
        while True:
            receive = asyncio.ensure_future(ws.receive_text())
            done, _ = await asyncio.wait({receive, closed}, timeout=idle, return_when=asyncio.FIRST_COMPLETED)
            if closed in done or receive not in done:
                receive.cancel()
                if not done:
                    reason = "idle"
                break

            raw = receive.result()
            try:
                control = ViewerControl.model_validate_json(raw)
            except ValidationError as exc:
                await ws.send_text(json.dumps({"type": "error", "detail": exc.errors(include_url=False)}, default=str))
                continue
            if not _apply(sub, control):
                break
    except WebSocketDisconnect:
        reason = "transport_closed"
    finally:
        await sub.close(reason)

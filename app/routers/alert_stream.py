# app/routers/alert_stream.py
"""
Live alert stream for dashboard sessions.
WS /alerts/stream: one DashboardAlertController per connection.

Server → client:
    {"type": "snapshot", "alerts": [...]}        history, newest first
    {"type": "alert", "alert": {...}}            a new alert, prepend it
    {"type": "cue", "alert_id": ..., "sound_url": ...}   danger only
    {"type": "acknowledged", "id": ...}
    {"type": "error", "message": ...}
Client → server:
    {"action": "acknowledge", "id": "<alert id>"}
"""

import asyncio
import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState

from app.services.alert_controller import DashboardAlertController
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _connected(websocket: WebSocket) -> bool:
    return (websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED)


@router.websocket("/alerts/stream")
async def alert_stream(websocket: WebSocket):
    settings = websocket.app.state.settings
    if settings.API_KEY and websocket.query_params.get("api_key") != settings.API_KEY:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    # Live messages wait until the snapshot is on the wire
    ready = asyncio.Event()

    async def send_cue(alert):
        await ready.wait()
        if not _connected(websocket):
            return
        await websocket.send_json({"type": "cue", "alert_id": alert.id, "sound_url": settings.ALERT_SOUND_URL})

    async def send_alert(alert):
        await ready.wait()
        if not _connected(websocket):
            return
        await websocket.send_json({"type": "alert", "alert": alert.model_dump(mode="json")})

    controller = DashboardAlertController(
        websocket.app.state.data_access,
        play_cue=send_cue,
        on_alert=send_alert,
        history_limit=settings.HISTORY_LIMIT,
    )
    try:
        if not await controller.mount():
            await websocket.send_json({"type": "error", "message": controller.error})
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            return

        await websocket.send_json({
            "type": "snapshot",
            "alerts": [a.model_dump(mode="json") for a in controller.alerts],
        })
        ready.set()
        logger.info(f"Dashboard stream opened ({len(controller.alerts)} alerts in snapshot)")

        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await websocket.send_json({"type": "error", "message": "Malformed message"})
                continue

            if not isinstance(message, dict) or message.get("action") != "acknowledge" or not message.get("id"):
                await websocket.send_json({"type": "error", "message": "Unsupported action"})
                continue

            alert_id = str(message["id"])
            if await controller.acknowledge(alert_id):
                await websocket.send_json({"type": "acknowledged", "id": alert_id})
            else:
                await websocket.send_json({"type": "error", "message": controller.error})

    except WebSocketDisconnect:
        logger.info("Dashboard stream closed by client")
    finally:
        controller.teardown()
        ready.set()

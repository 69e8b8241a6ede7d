"""
Change feed WebSocket endpoint.

WS /changes/ws pushes every committed insert, update or delete on the
attendees, events and settings tables:

    {"type": "change", "table": "attendees", "change_kind": "UPDATE", "payload": {...}}

Staff screens use it to refresh their lists when another desk writes.
Messages are relayed by the ChangeRelay started in the application lifespan.
"""

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.src.utils.logging_config import get_logger
from backend.src.utils.websocket import get_connection_manager


logger = get_logger("websocket")

router = APIRouter(prefix="/changes", tags=["Changes"])


@router.websocket("/ws")
async def changes_websocket(websocket: WebSocket):
    """
    WebSocket endpoint for row change notifications.

    Responds "pong" to "ping" and sends a heartbeat after 30s of silence.
    """
    manager = get_connection_manager()
    channel = manager.CHANGES_CHANNEL
    await manager.connect(channel, websocket)
    logger.debug(f"Change feed client connected ({manager.get_connection_count(channel)} total)")

    try:
        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=30.0
                )
                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                try:
                    await websocket.send_text('{"type": "heartbeat"}')
                except Exception:
                    break
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(channel, websocket)

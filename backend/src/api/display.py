"""
Public display API endpoints.

Provides:
- GET /display - The composed screen: one current event per location with
  countdown and timer colour
- WS /display/ws - Pushes the composed screen every second

The display needs no login. The screen is composed by the DisplayHub on
app.state, which also owns the rotation between events of a location.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status

from backend.src.schemas.display import DisplayResponse
from backend.src.services.display_service import DisplayHub
from backend.src.utils.logging_config import get_logger
from backend.src.utils.websocket import get_connection_manager


logger = get_logger("api")

router = APIRouter(prefix="/display", tags=["Display"])


def get_display_hub(request: Request) -> DisplayHub:
    """Get the display hub from application state."""
    return request.app.state.display_hub


def display_message(snapshot) -> dict:
    """WebSocket message carrying one composed screen."""
    return {
        "type": "display",
        "display": DisplayResponse.model_validate(snapshot).model_dump(mode="json"),
    }


@router.get(
    "",
    response_model=DisplayResponse,
    summary="Get public display",
)
async def get_display(
    hub: DisplayHub = Depends(get_display_hub),
) -> DisplayResponse:
    """
    Compose the public display from freshly read events.

    Example:
        GET /api/display

        Response:
        {
          "forum_name": "EventFlow.io",
          "server_time": "2026-01-20T09:10:00Z",
          "locations": [
            {
              "location": "Main Hall",
              "event": {"guid": "evt_...", "title": "Welcome Keynote", ...},
              "countdown": "49m 0s",
              "timer_color": "green",
              "blink": false,
              "index": 0,
              "count": 1
            }
          ]
        }
    """
    try:
        await hub.refresh()
        return DisplayResponse.model_validate(hub.snapshot())

    except Exception as e:
        logger.error(f"Error composing display: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred",
        )


@router.websocket("/ws")
async def display_websocket(websocket: WebSocket):
    """
    WebSocket endpoint for the public display.

    Sends the current screen on connect, then every push period.
    Responds "pong" to "ping" and sends a heartbeat after 30s of silence.
    """
    manager = get_connection_manager()
    channel = manager.DISPLAY_CHANNEL
    await manager.connect(channel, websocket)

    try:
        hub: DisplayHub = websocket.app.state.display_hub
        await websocket.send_json(display_message(hub.snapshot()))

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

"""
WebSocket fan-out for the change feed and the public display.

Clients subscribe to one channel:
- CHANGES_CHANNEL: one {"type": "change", table, change_kind, payload}
  message per committed row change
- DISPLAY_CHANNEL: the composed display, pushed every second

A client whose send fails is dropped from its channel; the remaining
clients still receive the message.
"""

import asyncio
from collections import defaultdict
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from backend.src.utils.logging_config import get_logger

logger = get_logger("websocket")


class ConnectionManager:

    CHANGES_CHANNEL = "__changes__"
    DISPLAY_CHANNEL = "__display__"

    def __init__(self):
        self._channels: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        """Accept the handshake and subscribe the socket to channel."""
        await websocket.accept()
        async with self._lock:
            self._channels[channel].add(websocket)
        logger.debug(f"Client joined {channel} ({self.get_connection_count(channel)} connected)")

    def disconnect(self, channel: str, websocket: WebSocket) -> None:
        """Unsubscribe; safe to call twice and from exception handlers."""
        members = self._channels.get(channel)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self._channels[channel]
        logger.debug(f"Client left {channel} ({self.get_connection_count(channel)} connected)")

    async def broadcast(self, channel: str, data: Dict[str, Any]) -> None:
        members = self._channels.get(channel)
        if not members:
            return

        failed = []
        for websocket in list(members):
            try:
                await websocket.send_json(data)
            except Exception as e:
                logger.debug(f"Dropping client on {channel}: {e}")
                failed.append(websocket)

        for websocket in failed:
            self.disconnect(channel, websocket)

    async def send_personal(self, channel: str, websocket: WebSocket, data: Dict[str, Any]) -> bool:
        """
        Send to one client.

        Returns:
            False if the send failed (the client is then disconnected)
        """
        try:
            await websocket.send_json(data)
        except Exception as e:
            logger.debug(f"Dropping client on {channel}: {e}")
            self.disconnect(channel, websocket)
            return False
        return True

    def get_connection_count(self, channel: Optional[str] = None) -> int:
        """Clients on one channel, or on all channels when channel is None."""
        if channel is not None:
            return len(self._channels.get(channel, ()))
        return sum(len(members) for members in self._channels.values())


_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Process-wide ConnectionManager, created on first use."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager

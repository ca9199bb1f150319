"""
WebSocket connection manager.
Keeps the open board subscriptions and pushes board change events to them,
so presentation clients can refetch columns instead of polling.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return value


class ConnectionManager:
    """
    Manages active WebSocket connections keyed by client_id (string).
    A client may hold several connections (one per open tab).
    """

    def __init__(self) -> None:
        self._connections: dict[str, list[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, client_id: str) -> None:
        await websocket.accept()
        self._connections.setdefault(client_id, []).append(websocket)
        logger.info("WebSocket connected: client_id=%s", client_id)

    def disconnect(self, websocket: WebSocket, client_id: str) -> None:
        if client_id in self._connections:
            try:
                self._connections[client_id].remove(websocket)
            except ValueError:
                pass
            if not self._connections[client_id]:
                del self._connections[client_id]
        logger.info("WebSocket disconnected: client_id=%s", client_id)

    async def broadcast(self, data: dict[str, Any]) -> None:
        """Send a JSON message to every connected client; drop dead sockets."""
        if not self._connections:
            return
        message = json.dumps(data)
        all_dead: list[tuple[WebSocket, str]] = []
        for client_id, connections in list(self._connections.items()):
            for ws in connections:
                try:
                    await ws.send_text(message)
                except Exception:
                    all_dead.append((ws, client_id))
        for ws, client_id in all_dead:
            self.disconnect(ws, client_id)

    async def publish_board_change(self, event: str, **data: Any) -> None:
        """Tell subscribers which part of the board changed."""
        payload = {"type": "board_changed", "event": event}
        payload.update({key: _jsonable(value) for key, value in data.items()})
        await self.broadcast(payload)

    @property
    def connected_client_count(self) -> int:
        return len(self._connections)


# Singleton instance shared across the application
ws_manager = ConnectionManager()

"""
WebSocket endpoint.
Board clients subscribe here to learn when columns need refetching.
Heartbeat ping/pong every 30 seconds keeps connections alive.
"""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from sprintboard.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])

HEARTBEAT_INTERVAL = 30  # seconds


@router.websocket("/ws/{client_id}")
async def websocket_endpoint(websocket: WebSocket, client_id: str) -> None:
    """
    WebSocket endpoint for board change events.

    The server sends:
        - {"type": "connected", "client_id": "..."} on connection.
        - {"type": "ping"} every 30 seconds as a heartbeat.
        - {"type": "board_changed", "event": "...", ...} after every board mutation.

    The client should respond to pings with {"type": "pong"}.
    """
    await ws_manager.connect(websocket, client_id)

    try:
        await websocket.send_json({"type": "connected", "client_id": client_id})

        heartbeat_task = asyncio.create_task(_heartbeat(websocket))

        try:
            while True:
                data = await websocket.receive_json()
                if data.get("type") == "pong":
                    logger.debug("Received pong from client_id=%s", client_id)
        finally:
            heartbeat_task.cancel()
            try:
                await heartbeat_task
            except asyncio.CancelledError:
                pass

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected: client_id=%s", client_id)
    except Exception as exc:
        logger.error("WebSocket error for client_id=%s: %s", client_id, exc)
    finally:
        ws_manager.disconnect(websocket, client_id)


async def _heartbeat(websocket: WebSocket) -> None:
    """Send periodic ping frames to keep the connection alive."""
    while True:
        await asyncio.sleep(HEARTBEAT_INTERVAL)
        try:
            await websocket.send_json({"type": "ping"})
        except Exception:
            break

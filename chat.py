"""
Chat relay over WebSockets.

Every inbound ``{"username", "message"}`` is broadcast to all open
connections. Open connections live in a ConnectionRegistry keyed by a
per-connection id; all access goes through its asyncio lock.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@dataclass
class ChatConnection:
    websocket: WebSocket
    username: Optional[str] = None


class ConnectionRegistry:
    def __init__(self):
        self._connections: Dict[str, ChatConnection] = {}
        self._lock = asyncio.Lock()

    async def add(self, websocket: WebSocket) -> str:
        connection_id = uuid.uuid4().hex
        async with self._lock:
            self._connections[connection_id] = ChatConnection(websocket)
        return connection_id

    async def remove(self, connection_id: str) -> None:
        async with self._lock:
            self._connections.pop(connection_id, None)

    async def set_username(self, connection_id: str, username: str) -> None:
        async with self._lock:
            conn = self._connections.get(connection_id)
            if conn is not None:
                conn.username = username

    async def snapshot(self) -> List[Tuple[str, ChatConnection]]:
        async with self._lock:
            return list(self._connections.items())

    async def online(self) -> List[str]:
        return sorted({c.username for _, c in await self.snapshot() if c.username})

    async def count(self) -> int:
        async with self._lock:
            return len(self._connections)

    async def broadcast(self, payload: Dict[str, Any]) -> int:
        """Send payload to every connection; connections that fail are dropped."""
        delivered = 0
        for connection_id, conn in await self.snapshot():
            try:
                await conn.websocket.send_json(payload)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info("chat_connection_dropped", connection_id=connection_id, error=str(e))
                await self.remove(connection_id)
        return delivered


registry = ConnectionRegistry()


@router.get("/api/chat/online")
async def chat_online():
    return {"success": True, "count": await registry.count(), "users": await registry.online()}


@router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket):
    await websocket.accept()
    connection_id = await registry.add(websocket)
    logger.info("chat_connected", connection_id=connection_id)
    try:
        while True:
            try:
                msg = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"error": "Messages must be JSON objects"})
                continue
            if not isinstance(msg, dict) or not msg.get("message"):
                await websocket.send_json({"error": "username and message are required"})
                continue
            username = str(msg.get("username") or "anonymous")
            await registry.set_username(connection_id, username)
            logger.debug("chat_message", connection_id=connection_id, username=username)
            await registry.broadcast({
                "username": username,
                "message": str(msg["message"]),
                "timestamp": int(time.time() * 1000),
            })
    except WebSocketDisconnect:
        pass
    finally:
        await registry.remove(connection_id)
        logger.info("chat_disconnected", connection_id=connection_id)

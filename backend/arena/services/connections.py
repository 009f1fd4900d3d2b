"""
Connection Hub — The push channel to debate observers.

WHAT THIS DOES:
Keeps track of open WebSocket connections, each identified by a
connection id. The id doubles as the debate session id: the client gets
it in the server:ready event and sends it back with POST /api/debate,
so turns for that debate are pushed to that socket.

MESSAGE FORMAT:
Every message is a JSON object with an "event" key:
- server:ready   {"event": "server:ready", "sessionId": ..., "message": ...}
- debate:turn    {"event": "debate:turn", "data": {"speaker", "text", "round"}}
- debate:status  {"event": "debate:status", "data": {"status", ...}}

A message for a session with no open socket is dropped (logged at debug);
the debate itself never depends on delivery.
"""

import asyncio
import logging
import uuid
from typing import Optional

from fastapi import WebSocket

from arena.models.schemas import StatusEvent, StatusPayload, TurnEvent, TurnPayload
from arena.services.debate.models import Turn

logger = logging.getLogger(__name__)

READY_MESSAGE = "Socket connection established. Debate streaming setup is ready."


class ConnectionHub:
    """Registry of live WebSockets, and the publisher used by debate sessions."""

    def __init__(self):
        self._connections: dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, session_id: Optional[str] = None) -> str:
        """Accept a socket, register it, and send the ready event."""
        await websocket.accept()
        session_id = session_id or uuid.uuid4().hex
        async with self._lock:
            self._connections[session_id] = websocket
        logger.info(f"[socket] Client connected: {session_id}")

        await websocket.send_json({
            "event": "server:ready",
            "sessionId": session_id,
            "message": READY_MESSAGE,
        })
        return session_id

    async def disconnect(self, session_id: str) -> None:
        async with self._lock:
            self._connections.pop(session_id, None)
        logger.info(f"[socket] Client disconnected: {session_id}")

    async def send(self, session_id: str, message: dict) -> bool:
        """
        Send one JSON message to a session's socket.

        Returns:
            True if a socket was found and the message was sent
        """
        websocket = self._connections.get(session_id)
        if websocket is None:
            logger.debug(f"No open socket for session {session_id}, dropping {message.get('event')}")
            return False
        await websocket.send_json(message)
        return True

    # =========================================================================
    # PUBLISHER INTERFACE (used by DebateSessionManager)
    # =========================================================================

    async def publish_turn(self, session_id: str, turn: Turn) -> None:
        event = TurnEvent(data=TurnPayload(**turn.to_payload()))
        await self.send(session_id, event.model_dump())

    async def publish_status(self, session_id: str, status: dict) -> None:
        event = StatusEvent(data=StatusPayload.model_validate(status))
        await self.send(
            session_id,
            event.model_dump(by_alias=True, exclude_none=True),
        )

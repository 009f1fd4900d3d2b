"""
API Routes — The endpoints that tie everything together.

ENDPOINTS:
- POST /api/debate           → Upload PDF + topic, start a debate (returns immediately)
- POST /api/debate/stop      → Ask a running debate to stop
- GET  /api/debate/sessions  → List running debates
- WS   /ws                   → Push channel: turns and final status

FLOW:
1. Open the WebSocket /ws and read your sessionId from the server:ready event
2. POST /api/debate with the PDF, the topic, and that sessionId
3. Receive debate:turn events as the Critic and Defender speak
4. Receive one debate:status event when the debate ends
5. (Optional) POST /api/debate/stop or send {"event": "debate:stop"} on the socket
"""

import json
import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from arena.models.schemas import (
    DebateStartResponse,
    SessionsResponse,
    StopRequest,
    StopResponse,
)
from arena.services.connections import ConnectionHub
from arena.services.debate.errors import SessionAlreadyActiveError
from arena.services.session_manager import DebateSessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])
ws_router = APIRouter(tags=["ws"])


def get_session_manager(request: Request) -> DebateSessionManager:
    """Dependency that returns the app-wide session manager."""
    return request.app.state.session_manager


def _parse_rounds(value: Optional[str]):
    """
    Best-effort integer parse of the totalRounds form field.

    Unparseable values are passed through unchanged; the orchestrator
    coerces them to the default round count.
    """
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        return value


# =============================================================================
# DEBATE LIFECYCLE
# =============================================================================

@router.post(
    "/debate",
    response_model=DebateStartResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_debate(
    document: Optional[UploadFile] = File(None),
    topic: Optional[str] = Form(None),
    totalRounds: Optional[str] = Form(None),
    sessionId: Optional[str] = Form(None),
    manager: DebateSessionManager = Depends(get_session_manager),
) -> DebateStartResponse:
    """
    Start a debate over an uploaded PDF.

    The response is an acknowledgment only; turns arrive on the
    WebSocket identified by sessionId.

    Example:
        POST /api/debate  (multipart/form-data)
        document=@paper.pdf, topic="Is X ethical?", totalRounds=3, sessionId=3f2a...

        Returns 202 {"success": true, "message": "Debate started.", "sessionId": "3f2a..."}
    """
    if document is None:
        raise HTTPException(
            status_code=400,
            detail='No document uploaded. Please attach a PDF file in the "document" field.',
        )
    if not topic or not topic.strip():
        raise HTTPException(status_code=400, detail='A non-empty "topic" field is required.')
    if not sessionId or not sessionId.strip():
        raise HTTPException(status_code=400, detail='A non-empty "sessionId" field is required.')

    data = await document.read()
    if not data:
        raise HTTPException(status_code=400, detail="The uploaded document is empty.")

    session_id = sessionId.strip()
    logger.info(f"Debate requested for session {session_id}: '{topic.strip()}'")

    try:
        manager.start(session_id, data, topic.strip(), _parse_rounds(totalRounds))
    except SessionAlreadyActiveError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return DebateStartResponse(session_id=session_id)


@router.post(
    "/debate/stop",
    response_model=StopResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def stop_debate(
    request: StopRequest,
    manager: DebateSessionManager = Depends(get_session_manager),
) -> StopResponse:
    """
    Request that a running debate stop before its next model call.

    Fire-and-forget: the final status arrives on the WebSocket.

    Example:
        POST /api/debate/stop
        {"sessionId": "3f2a..."}
    """
    manager.stop(request.session_id)
    return StopResponse()


@router.get("/debate/sessions", response_model=SessionsResponse)
async def list_sessions(
    manager: DebateSessionManager = Depends(get_session_manager),
) -> SessionsResponse:
    """List session ids with a debate currently running."""
    return SessionsResponse(active=manager.active_sessions())


# =============================================================================
# PUSH CHANNEL
# =============================================================================

@ws_router.websocket("/ws")
async def debate_socket(websocket: WebSocket):
    """
    One socket per observer.

    The server assigns the session id. Closing the socket stops any
    debate running for it, so no model calls are made for nobody.
    """
    hub: ConnectionHub = websocket.app.state.hub
    manager: DebateSessionManager = websocket.app.state.session_manager

    session_id = await hub.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"[socket] Ignoring non-JSON message from {session_id}")
                continue

            if isinstance(message, dict) and message.get("event") == "debate:stop":
                manager.stop(session_id)
    except WebSocketDisconnect as e:
        logger.info(f"[socket] {session_id} closed (code {e.code})")
    finally:
        await hub.disconnect(session_id)
        manager.stop(session_id)

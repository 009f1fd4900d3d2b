"""
Pydantic schemas for API request/response validation.

These define the shape of data that goes in and out of the API and the
WebSocket push channel.

FLOW OVERVIEW:
==============
1. Client opens WebSocket /ws → receives server:ready with its sessionId
2. Client sends POST /api/debate (PDF + topic + sessionId) → DebateStartResponse
3. Server pushes debate:turn events (TurnEvent) as turns are produced
4. Server pushes one debate:status event (StatusEvent) when the run ends
5. Client may send POST /api/debate/stop (StopRequest) at any time
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# EVIDENCE SCHEMAS
# =============================================================================
#
# WHEN USED:
# - EvidenceSnippet: Returned by the KnowledgeBase, formatted into persona prompts
#

class EvidenceSnippet(BaseModel):
    """
    A document chunk with a relevance score from vector search.

    USED BY: KnowledgeBase.retrieve() (internal)
    WHEN: Every persona turn, before the chat call
    """
    chunk_index: int = Field(description="Position of the chunk in the document")
    text: str
    relevance_score: float = Field(description="Cosine similarity to the query (-1 to 1)")


# =============================================================================
# API REQUEST / RESPONSE SCHEMAS
# =============================================================================
#
# POST /api/debate is multipart (it carries a file), so its fields are
# declared as Form/File parameters on the route rather than a model here.
#

class DebateStartResponse(BaseModel):
    """
    Acknowledgment for POST /api/debate.

    Returned immediately; the debate itself runs in the background and
    streams over the WebSocket.
    """
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Debate started."
    session_id: str = Field(alias="sessionId")


class StopRequest(BaseModel):
    """
    Request body for POST /api/debate/stop.

    Example:
        POST /api/debate/stop
        {"sessionId": "3f2a..."}
    """
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)


class StopResponse(BaseModel):
    success: bool = True
    message: str = "Stop requested."


class SessionsResponse(BaseModel):
    """Currently running debates (GET /api/debate/sessions)."""
    active: list[str]


# =============================================================================
# PUSH CHANNEL EVENTS
# =============================================================================
#
# Every WebSocket message is {"event": <name>, ...}.
#

class TurnPayload(BaseModel):
    speaker: Literal["Critic", "Defender", "System"]
    text: str
    round: int = Field(ge=1)


class TurnEvent(BaseModel):
    """One produced turn, pushed as soon as it exists."""
    event: Literal["debate:turn"] = "debate:turn"
    data: TurnPayload


class StatusPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["completed", "stopped", "error"]
    cancelled: Optional[bool] = None
    message: Optional[str] = None
    error_kind: Optional[str] = Field(default=None, alias="errorKind")


class StatusEvent(BaseModel):
    """The single terminal event of a run."""
    event: Literal["debate:status"] = "debate:status"
    data: StatusPayload

# API schemas and push-channel events
from arena.models.schemas import (
    EvidenceSnippet,
    DebateStartResponse,
    StopRequest,
    TurnEvent,
    StatusEvent,
)

__all__ = [
    "EvidenceSnippet",
    "DebateStartResponse",
    "StopRequest",
    "TurnEvent",
    "StatusEvent",
]

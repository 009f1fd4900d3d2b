"""
Debate Module — Critic vs. Defender debate over an uploaded document.

Two persona agents take turns: the Critic attacks, the Defender rebuts.
Turns are streamed to the observer as they are produced, model calls are
paced to respect a per-minute quota, and the observer can stop the run
at any time.

COMPONENTS:
- DebateOrchestrator: The round loop (main entry point)
- ActorInvoker: Calls a persona and validates its answer
- PacedClock: Cancellable delay between model calls
- CancellationRegistry: Per-session stop flags
- classify_error: Maps failures to RateLimited / Cancelled / Generic
- PersonaActor: OpenAI-backed Critic and Defender

USAGE:
    from arena.services.debate import DebateOrchestrator, CancellationRegistry

    registry = CancellationRegistry()
    outcome = await DebateOrchestrator().run(
        critic, defender, "Is X ethical?",
        total_rounds=2,
        on_turn=publish,
        should_cancel=registry.checker(session_id),
    )
    print(outcome.status, len(outcome.transcript))
"""

# Main entry points
from arena.services.debate.orchestrator import (
    DebateOrchestrator,
    run_debate,
)

# Data models
from arena.services.debate.models import (
    ErrorKind,
    RunOutcome,
    RunStatus,
    Speaker,
    Turn,
)

# Loop collaborators
from arena.services.debate.cancellation import CancellationRegistry
from arena.services.debate.invoker import ActorInvoker
from arena.services.debate.pacing import PacedClock

# Failure taxonomy
from arena.services.debate.errors import (
    ConfigurationError,
    DebateCancelledError,
    DebateError,
    EmptyResponseError,
    InvalidActorError,
    InvalidTopicError,
    RateLimitedError,
    SessionAlreadyActiveError,
    classify_error,
)

# Personas and capability interfaces
from arena.services.debate.personas import PersonaActor, create_personas
from arena.services.debate.protocols import (
    BaseActor,
    BaseRetriever,
    InvokeShapeAdapter,
    as_actor,
)

__all__ = [
    # Main entry points
    "DebateOrchestrator",
    "run_debate",
    # Data models
    "ErrorKind",
    "RunOutcome",
    "RunStatus",
    "Speaker",
    "Turn",
    # Loop collaborators
    "CancellationRegistry",
    "ActorInvoker",
    "PacedClock",
    # Errors
    "ConfigurationError",
    "DebateCancelledError",
    "DebateError",
    "EmptyResponseError",
    "InvalidActorError",
    "InvalidTopicError",
    "RateLimitedError",
    "SessionAlreadyActiveError",
    "classify_error",
    # Personas
    "PersonaActor",
    "create_personas",
    # Abstract bases
    "BaseActor",
    "BaseRetriever",
    "InvokeShapeAdapter",
    "as_actor",
]

"""
Debate Protocols — Abstract base classes for the debate's collaborators.

WHAT THIS IS:
The orchestrator only knows two capabilities:
- an actor that can respond(topic, prior_context) with text
- a retriever that can retrieve(query) ordered evidence

Anything else (a LangChain-style runnable exposing invoke({...}), a test
double, a different provider) is adapted to these shapes HERE, at the
boundary, so the loop itself never branches on call shapes.

USAGE:
    class MyActor(BaseActor):
        async def respond(self, topic, prior_context) -> str:
            ...

    actor = InvokeShapeAdapter(runnable)  # runnable.invoke({"topic", "priorContext"})
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any

from arena.services.debate.errors import InvalidActorError


class BaseActor(ABC):
    """
    A role-bound text generator (Critic or Defender).

    Implement this to plug a new persona backend into the debate.
    """

    @abstractmethod
    async def respond(self, topic: str, prior_context: str) -> str:
        """
        Produce the next turn.

        Args:
            topic: Role-specific instruction composed by the orchestrator
            prior_context: Conversation so far, one "{speaker}: {text}" per line

        Returns:
            Generated text
        """
        pass


class BaseRetriever(ABC):
    """
    Evidence source shared by both personas.

    Ranking and latency are the retriever's business.
    """

    @abstractmethod
    async def retrieve(self, query: str, top_k: int | None = None) -> list:
        """Return evidence snippets for the query, most relevant first."""
        pass


class InvokeShapeAdapter(BaseActor):
    """
    Adapts an object exposing invoke(payload) to the respond() contract.

    The payload is {"topic": ..., "priorContext": ...}; invoke may be sync
    or async.
    """

    def __init__(self, runnable: Any):
        if runnable is None or not callable(getattr(runnable, "invoke", None)):
            raise InvalidActorError("Expected an object with a callable invoke(payload).")
        self.runnable = runnable

    async def respond(self, topic: str, prior_context: str) -> str:
        result = self.runnable.invoke({"topic": topic, "priorContext": prior_context})
        if inspect.isawaitable(result):
            result = await result
        return result


def as_actor(candidate: Any) -> Any:
    """
    Normalize a candidate to the respond() contract.

    Objects that already respond() pass through; invoke()-shaped objects
    are wrapped; anything else is returned unchanged so the invoker can
    reject it with InvalidActorError.
    """
    if callable(getattr(candidate, "respond", None)):
        return candidate
    if callable(getattr(candidate, "invoke", None)):
        return InvokeShapeAdapter(candidate)
    return candidate

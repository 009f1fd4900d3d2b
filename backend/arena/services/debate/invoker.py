"""
Actor Invoker — One uniform way to call a persona and check its answer.

WHAT THIS DOES:
Every model call in the debate goes through invoke(). It makes sure the
actor can respond at all, calls it, and guarantees the loop only ever
sees a non-empty, trimmed string.

WHAT THIS DOESN'T DO:
Retry. Retries are disabled on purpose: on a per-minute quota, a retry
after a 429 just burns the next minute's budget too. Failures other
than our own validation errors propagate untouched so the
ErrorClassifier can look at the original exception.
"""

import inspect
import logging
import time
from typing import Any

from arena.services.debate.errors import EmptyResponseError, InvalidActorError

logger = logging.getLogger(__name__)


class ActorInvoker:
    """Call-and-validate wrapper around a persona actor."""

    def validate(self, actor: Any) -> None:
        """Raise InvalidActorError if the actor has no respond() capability."""
        if actor is None or not callable(getattr(actor, "respond", None)):
            raise InvalidActorError(
                "Invalid actor. Expected an object with a callable respond(topic, prior_context)."
            )

    async def invoke(self, actor: Any, topic: str, prior_context: str) -> str:
        """
        Ask an actor for its next turn.

        Args:
            actor: Object exposing respond(topic, prior_context)
            topic: The role-specific instruction for this turn
            prior_context: Serialized conversation so far (or the sentinel)

        Returns:
            The actor's response, stripped of surrounding whitespace
        """
        self.validate(actor)

        start_time = time.time()
        result = actor.respond(topic, prior_context)
        if inspect.isawaitable(result):
            result = await result

        if not isinstance(result, str) or not result.strip():
            raise EmptyResponseError("Actor returned an empty or invalid response.")

        text = result.strip()
        logger.debug(
            f"{type(actor).__name__} responded with {len(text)} chars "
            f"in {time.time() - start_time:.2f}s"
        )
        return text

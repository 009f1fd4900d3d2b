"""
Debate Session Manager — Runs debates in the background, one per session.

WHAT THIS DOES:
Glue between the transport (HTTP + WebSocket) and the debate loop:
- start(): acknowledge immediately, run the debate as a background task
- stop(): flag the session as cancelled (honored during document indexing too)
- relays every produced turn to the publisher, in order
- publishes exactly one terminal status per run
- ALWAYS clears the session's cancellation flag when the run ends

WHY THIS EXISTS:
- Keeps API routes thin (they only validate and hand off)
- The request/response cycle must not wait for a multi-minute debate
- Single place that owns the CancellationRegistry lifecycle

STREAMING:
The loop writes turns into a bounded TurnChannel; a relay task drains
it to the publisher. If the observer is slow, the loop waits at the
channel instead of buffering without bound.

ONE RUN PER SESSION:
A second start for a session that is still running is rejected with
SessionAlreadyActiveError (the API answers 409).

USAGE:
    manager = DebateSessionManager(CancellationRegistry(), hub)
    manager.start(session_id, pdf_bytes, "Is X ethical?", total_rounds=3)
    ...
    manager.stop(session_id)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from arena.config import Settings, get_settings
from arena.services.debate.cancellation import CancellationRegistry
from arena.services.debate.errors import (
    ConfigurationError,
    DebateCancelledError,
    DebateError,
    SessionAlreadyActiveError,
    caller_message,
    classify_error,
)
from arena.services.debate.models import ErrorKind, RunOutcome, Turn
from arena.services.debate.orchestrator import DebateOrchestrator
from arena.services.debate.pacing import PacedClock, raise_if_cancelled
from arena.services.debate.personas import create_personas
from arena.services.debate.protocols import as_actor
from arena.services.document_processor import parse_and_chunk_pdf
from arena.services.embeddings import EmbeddingService
from arena.services.retriever import KnowledgeBase

logger = logging.getLogger(__name__)

ActorFactory = Callable[[bytes, Callable[[], bool]], Awaitable[tuple[Any, Any]]]


class TurnChannel:
    """
    Bounded, ordered, finite stream of turns.

    The producer put()s turns and close()s when done; the consumer
    iterates with `async for` until the channel is closed.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 16):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def put(self, turn: Turn) -> None:
        await self._queue.put(turn)

    async def close(self) -> None:
        await self._queue.put(self._CLOSED)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item


class DebateSessionManager:
    """
    Starts, stops, and tracks background debate runs.

    The publisher must provide:
        async publish_turn(session_id, turn)
        async publish_status(session_id, status_dict)
    """

    def __init__(
        self,
        registry: CancellationRegistry,
        publisher: Any,
        settings: Optional[Settings] = None,
        orchestrator: Optional[DebateOrchestrator] = None,
        actor_factory: Optional[ActorFactory] = None,
    ):
        """
        Initialize the manager.

        Args:
            registry: Stop flags shared with the stop path
            publisher: Delivers turns and status to the observer
            settings: Pacing and preprocessing configuration
            orchestrator: Debate loop (default built from settings)
            actor_factory: (document bytes, should_cancel) → (critic, defender)
                (default: parse PDF, embed chunks, build OpenAI personas)
        """
        self.registry = registry
        self.publisher = publisher
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or DebateOrchestrator(
            clock=PacedClock(poll_interval=self.settings.cancel_poll_interval_seconds),
            turn_delay=self.settings.turn_delay_seconds,
            default_rounds=self.settings.default_rounds,
        )
        self.actor_factory = actor_factory or self.build_personas
        self._tasks: dict[str, asyncio.Task] = {}

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def start(
        self,
        session_id: str,
        document: bytes,
        topic: str,
        total_rounds: Any = None,
    ) -> None:
        """
        Schedule a debate and return immediately.

        Must be called from a running event loop.

        Raises:
            SessionAlreadyActiveError: a debate is already running for session_id
        """
        if self.is_active(session_id):
            raise SessionAlreadyActiveError(session_id)

        self.registry.clear(session_id)
        task = asyncio.create_task(
            self._run_session(session_id, document, topic, total_rounds),
            name=f"debate-{session_id}",
        )
        self._tasks[session_id] = task
        logger.info(f"Debate scheduled for session {session_id} (rounds={total_rounds!r})")

    def stop(self, session_id: str) -> None:
        """Request cancellation. Fire-and-forget; unknown sessions are ignored."""
        if not self.is_active(session_id):
            logger.debug(f"Stop for inactive session {session_id} ignored")
            return
        self.registry.request(session_id)

    def is_active(self, session_id: str) -> bool:
        task = self._tasks.get(session_id)
        return task is not None and not task.done()

    def active_sessions(self) -> list[str]:
        return sorted(sid for sid in self._tasks if self.is_active(sid))

    async def wait(self, session_id: str) -> None:
        """Wait for a session's run to finish (no-op if none is running)."""
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every running debate and wait for cleanup."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} running debates")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # DEFAULT ACTOR FACTORY
    # =========================================================================

    async def build_personas(
        self,
        document: bytes,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> tuple[Any, Any]:
        """
        PDF bytes → chunks → knowledge base → (critic, defender).

        A stop requested while the document is being indexed ends the
        setup before the next embeddings request.

        Raises:
            ConfigurationError: no OpenAI API key is configured
            DebateCancelledError: a stop was requested during setup
        """
        if not self.settings.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not configured. Set it in the environment or .env file."
            )

        processed = await asyncio.to_thread(
            parse_and_chunk_pdf,
            document,
            self.settings.chunk_size,
            self.settings.chunk_overlap,
        )
        raise_if_cancelled(should_cancel)

        knowledge_base = await KnowledgeBase.build(
            processed.chunks,
            EmbeddingService(),
            batch_size=self.settings.embedding_batch_size,
            batch_delay=self.settings.embedding_batch_delay_seconds,
            top_k=self.settings.retriever_top_k,
            clock=PacedClock(poll_interval=self.settings.cancel_poll_interval_seconds),
            should_cancel=should_cancel,
        )
        return create_personas(knowledge_base, self.settings)

    # =========================================================================
    # BACKGROUND RUN
    # =========================================================================

    async def _run_session(
        self,
        session_id: str,
        document: bytes,
        topic: str,
        total_rounds: Any,
    ) -> None:
        channel = TurnChannel(self.settings.turn_channel_size)
        relay = asyncio.create_task(self._relay(session_id, channel))
        status_event: Optional[dict] = None

        try:
            critic, defender = await self.actor_factory(
                document,
                self.registry.checker(session_id),
            )
            outcome = await self.orchestrator.run(
                as_actor(critic),
                as_actor(defender),
                topic,
                total_rounds=total_rounds,
                on_turn=channel.put,
                should_cancel=self.registry.checker(session_id),
            )
            status_event = outcome.to_status_event()
            logger.info(
                f"Session {session_id} finished: {outcome.status.value}, "
                f"{len(outcome.transcript)} turns"
            )
        except DebateCancelledError:
            logger.info(f"Session {session_id} stopped before the debate started")
            status_event = RunOutcome.stopped([]).to_status_event()
        except Exception as e:
            logger.exception(f"Session {session_id} failed before the debate could run")
            status_event = self._setup_failure(e).to_status_event()
        finally:
            try:
                await channel.close()
                await relay
                if status_event is not None:
                    await self._publish_status(session_id, status_event)
            finally:
                self.registry.clear(session_id)
                self._tasks.pop(session_id, None)

    def _setup_failure(self, error: Exception) -> RunOutcome:
        """Outcome for failures outside the loop (bad PDF, embedding quota, bad topic)."""
        if isinstance(error, DebateError) and error.kind in (
            ErrorKind.INVALID_TOPIC,
            ErrorKind.INVALID_ACTOR,
        ):
            kind = error.kind
        else:
            kind = classify_error(error)
        return RunOutcome.failed([], kind, error=error, message=caller_message(error, kind))

    async def _relay(self, session_id: str, channel: TurnChannel) -> None:
        """Drain the channel to the publisher, in order."""
        async for turn in channel:
            try:
                await self.publisher.publish_turn(session_id, turn)
            except Exception as e:
                # Keep draining; a dead observer must not block the loop
                logger.warning(f"Failed to deliver turn to session {session_id}: {e}")

    async def _publish_status(self, session_id: str, status_event: dict) -> None:
        try:
            await self.publisher.publish_status(session_id, status_event)
        except Exception as e:
            logger.warning(f"Failed to deliver status to session {session_id}: {e}")

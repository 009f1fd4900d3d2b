"""
Debate Orchestrator — Drives the Critic/Defender round loop.

WHAT THIS DOES:
Runs a fixed number of rounds. In each round the Critic attacks, we
wait, the Defender rebuts, we wait. Every turn is handed to on_turn the
moment it exists, so the observer sees the debate unfold live.

HOW IT WORKS (one round):
1. RoundStart     → stop requested? end as Cancelled
2. CriticInvoking → round 1 critiques the topic, later rounds attack the
                    Defender's previous point
3. CriticPacing   → cancellable wait (quota gap)
4. DefenderInvoking → always answers the Critic's latest claim
5. DefenderPacing → cancellable wait
6. Last round? → Completed. Otherwise the Defender's text becomes the
   next Critic instruction.

TERMINATION:
- Completed: full transcript, no System turn
- Cancelled: transcript + one System turn, status "stopped"
- Failed:    transcript + one System turn, status "error" with the
             classified kind (RateLimited or Generic)
Turns already emitted are never retracted.

QUOTA SAFETY:
A stop cannot interrupt a model call already in flight; it prevents the
next one. Letting one call finish is cheaper than risking a duplicate.

USAGE:
    orchestrator = DebateOrchestrator(turn_delay=6.5)
    outcome = await orchestrator.run(
        critic, defender, "Is X ethical?", total_rounds=2,
        on_turn=publish, should_cancel=registry.checker(session_id),
    )
"""

import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from arena.services.debate.errors import (
    InvalidTopicError,
    caller_message,
    classify_error,
)
from arena.services.debate.invoker import ActorInvoker
from arena.services.debate.models import (
    ErrorKind,
    RunOutcome,
    Speaker,
    Turn,
    format_transcript,
)
from arena.services.debate.pacing import PacedClock, raise_if_cancelled

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 3
DEFAULT_TURN_DELAY = 6.5

STYLE_RULES = "\n".join([
    "CRITICAL RULE: Keep your response strictly under 3 to 4 sentences.",
    "Be concise, punchy, aggressive, and highly precise.",
    "Do not use fluff, filler words, or polite introductory phrases. Get straight to the point.",
])

# System turn wording is user-facing; raw upstream errors never go here
CANCELLED_MESSAGE = "Debate stopped by user. Generation ended before the next model call."
RATE_LIMITED_MESSAGE = (
    "Rate limit reached (429). Debate stopped safely. Please wait about 60 seconds and retry."
)
GENERIC_FAILURE_MESSAGE = "Debate stopped early due to an upstream error. Please try again."

TurnCallback = Callable[[Turn], Optional[Awaitable[None]]]


def build_critic_instruction(round_number: int, prompt: str) -> str:
    """Round 1 critiques the topic; later rounds attack the Defender's last point."""
    if round_number == 1:
        return (
            f"Round {round_number}: Analyze this topic and open with a strong critique, "
            f"identifying key flaws.\n\nTopic:\n{prompt}\n\n{STYLE_RULES}"
        )
    return (
        f"Round {round_number}: Attack the Defender's previous argument and expose "
        f"weaknesses.\n\nDefender's last point:\n{prompt}\n\n{STYLE_RULES}"
    )


def build_defender_instruction(round_number: int, critic_text: str) -> str:
    return (
        f"Round {round_number}: Defend the document against the Critic's latest "
        f"argument.\n\nCritic's claim:\n{critic_text}\n\n{STYLE_RULES}"
    )


def _system_message(kind: ErrorKind) -> str:
    if kind is ErrorKind.CANCELLED:
        return CANCELLED_MESSAGE
    if kind is ErrorKind.RATE_LIMITED:
        return RATE_LIMITED_MESSAGE
    return GENERIC_FAILURE_MESSAGE


class DebateOrchestrator:
    """
    Runs one debate from first Critic turn to terminal outcome.

    An orchestrator holds no per-run state, so one instance can serve
    many sessions; each run() owns its own transcript.
    """

    def __init__(
        self,
        invoker: Optional[ActorInvoker] = None,
        clock: Optional[PacedClock] = None,
        turn_delay: float = DEFAULT_TURN_DELAY,
        default_rounds: int = DEFAULT_ROUNDS,
    ):
        """
        Initialize the orchestrator.

        Args:
            invoker: Call-and-validate wrapper (default ActorInvoker())
            clock: Interruptible delay (default PacedClock())
            turn_delay: Seconds to wait after every model call
            default_rounds: Used when total_rounds is not a positive int
        """
        self.invoker = invoker or ActorInvoker()
        self.clock = clock or PacedClock()
        self.turn_delay = turn_delay
        self.default_rounds = default_rounds

    def _resolve_rounds(self, total_rounds: Any) -> int:
        # bool is an int subclass; True is not a round count
        if isinstance(total_rounds, int) and not isinstance(total_rounds, bool) and total_rounds > 0:
            return total_rounds
        if total_rounds is not None:
            logger.warning(
                f"Invalid total_rounds {total_rounds!r}, using default {self.default_rounds}"
            )
        return self.default_rounds

    async def run(
        self,
        critic: Any,
        defender: Any,
        topic: str,
        total_rounds: Any = None,
        on_turn: Optional[TurnCallback] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> RunOutcome:
        """
        Run the debate and return how it ended.

        Args:
            critic: Actor that attacks
            defender: Actor that rebuts
            topic: The initial debate topic
            total_rounds: Number of Critic+Defender exchanges (coerced to default if invalid)
            on_turn: Called once per produced turn, in order; may be async
            should_cancel: Polled at round start and every pacing tick

        Returns:
            RunOutcome (completed, stopped, or error) with the transcript

        Raises:
            InvalidTopicError: topic is not a non-empty string
            InvalidActorError: an actor has no respond() capability
        """
        if not isinstance(topic, str) or not topic.strip():
            raise InvalidTopicError("A non-empty topic string is required to run a debate.")
        self.invoker.validate(critic)
        self.invoker.validate(defender)

        rounds = self._resolve_rounds(total_rounds)
        transcript: list[Turn] = []
        round_number = 1
        critic_prompt = topic.strip()
        start_time = time.time()

        logger.info(f"Starting debate: {rounds} rounds, turn delay {self.turn_delay}s")

        try:
            for round_number in range(1, rounds + 1):
                raise_if_cancelled(should_cancel)

                critic_text = await self.invoker.invoke(
                    critic,
                    build_critic_instruction(round_number, critic_prompt),
                    format_transcript(transcript),
                )
                await self._emit(transcript, Turn(Speaker.CRITIC, critic_text, round_number), on_turn)
                await self.clock.wait(self.turn_delay, should_cancel)

                defender_text = await self.invoker.invoke(
                    defender,
                    build_defender_instruction(round_number, critic_text),
                    format_transcript(transcript),
                )
                await self._emit(transcript, Turn(Speaker.DEFENDER, defender_text, round_number), on_turn)
                await self.clock.wait(self.turn_delay, should_cancel)

                critic_prompt = defender_text
                logger.info(f"Round {round_number}/{rounds} complete")

        except Exception as e:
            return await self._terminate(transcript, round_number, e, on_turn)

        logger.info(
            f"Debate complete: {len(transcript)} turns in {time.time() - start_time:.2f}s"
        )
        return RunOutcome.completed(transcript)

    async def _emit(
        self,
        transcript: list[Turn],
        turn: Turn,
        on_turn: Optional[TurnCallback],
    ) -> None:
        """Append a turn and hand it to the observer."""
        transcript.append(turn)
        if on_turn is None:
            return
        result = on_turn(turn)
        if inspect.isawaitable(result):
            await result

    async def _terminate(
        self,
        transcript: list[Turn],
        round_number: int,
        error: BaseException,
        on_turn: Optional[TurnCallback],
    ) -> RunOutcome:
        """Append the single System turn and build the outcome."""
        kind = classify_error(error)
        if kind is ErrorKind.CANCELLED:
            logger.info(f"Debate cancelled at round {round_number} after {len(transcript)} turns")
        else:
            logger.error(
                f"Debate failed at round {round_number} ({kind.value}): {error}"
            )

        system_turn = Turn(Speaker.SYSTEM, _system_message(kind), round_number)
        try:
            await self._emit(transcript, system_turn, on_turn)
        except Exception as emit_error:
            # The turn is already in the transcript; the observer is gone
            logger.error(f"Failed to deliver system turn: {emit_error}")

        if kind is ErrorKind.CANCELLED:
            return RunOutcome.stopped(transcript)
        return RunOutcome.failed(
            transcript,
            kind,
            error=error,
            message=caller_message(error, kind),
        )


async def run_debate(
    critic: Any,
    defender: Any,
    topic: str,
    total_rounds: Any = None,
    on_turn: Optional[TurnCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    turn_delay: float = DEFAULT_TURN_DELAY,
) -> RunOutcome:
    """
    Convenience function to run a debate with default collaborators.

    Example:
        outcome = await run_debate(critic, defender, "Is X ethical?", total_rounds=2)
    """
    orchestrator = DebateOrchestrator(turn_delay=turn_delay)
    return await orchestrator.run(
        critic,
        defender,
        topic,
        total_rounds=total_rounds,
        on_turn=on_turn,
        should_cancel=should_cancel,
    )

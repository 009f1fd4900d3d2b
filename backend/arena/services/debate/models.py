"""
Debate Models — Data structures for the Critic/Defender debate loop.

These dataclasses define the contract between debate components:
- Turn: One utterance produced by a speaker in a round
- RunOutcome: How a debate run ended, always with the transcript so far
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Prior context handed to the Critic on the very first call
NO_PRIOR_TURNS = "No previous turns yet."


class Speaker(str, Enum):
    """Who produced a turn."""

    CRITIC = "Critic"
    DEFENDER = "Defender"
    SYSTEM = "System"


class ErrorKind(str, Enum):
    """Failure taxonomy for a debate run."""

    INVALID_TOPIC = "InvalidTopic"
    INVALID_ACTOR = "InvalidActor"
    EMPTY_RESPONSE = "EmptyResponse"
    RATE_LIMITED = "RateLimited"
    CANCELLED = "Cancelled"
    GENERIC = "Generic"


class RunStatus(str, Enum):
    """Terminal status reported to the observer."""

    COMPLETED = "completed"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass(frozen=True)
class Turn:
    """
    A single utterance in the debate.

    Turns are immutable once created. System turns describe why a run
    ended and carry the round at which the loop stopped.
    """

    speaker: Speaker
    """Critic, Defender, or System"""

    text: str
    """What was said (never empty)"""

    round: int
    """1-indexed round this turn belongs to"""

    def __post_init__(self):
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("Turn text must be a non-empty string")
        if not isinstance(self.round, int) or self.round < 1:
            raise ValueError(f"Turn round must be a positive integer, got {self.round!r}")

    def to_payload(self) -> dict:
        """Shape pushed to the observer."""
        return {
            "speaker": self.speaker.value,
            "text": self.text,
            "round": self.round,
        }


def format_transcript(transcript: list[Turn]) -> str:
    """
    Serialize the conversation so far for a persona prompt.

    Each turn becomes a "{speaker}: {text}" line. An empty transcript
    becomes the NO_PRIOR_TURNS sentinel.
    """
    if not transcript:
        return NO_PRIOR_TURNS
    return "\n".join(f"{turn.speaker.value}: {turn.text}" for turn in transcript)


@dataclass
class RunOutcome:
    """
    Final result of a debate run.

    Every outcome carries the transcript accumulated so far, including
    at most one trailing System turn when the run did not complete.
    """

    status: RunStatus
    """completed, stopped, or error"""

    transcript: list[Turn] = field(default_factory=list)
    """Turns produced before termination, in production order"""

    error_kind: Optional[ErrorKind] = None
    """Classified failure (only for status=error or stopped)"""

    error: Optional[BaseException] = None
    """The underlying exception, kept for logging (never sent as-is)"""

    message: str = ""
    """Caller-visible message for error outcomes"""

    @classmethod
    def completed(cls, transcript: list[Turn]) -> "RunOutcome":
        return cls(status=RunStatus.COMPLETED, transcript=list(transcript))

    @classmethod
    def stopped(cls, transcript: list[Turn]) -> "RunOutcome":
        return cls(
            status=RunStatus.STOPPED,
            transcript=list(transcript),
            error_kind=ErrorKind.CANCELLED,
        )

    @classmethod
    def failed(
        cls,
        transcript: list[Turn],
        error_kind: ErrorKind,
        error: Optional[BaseException] = None,
        message: str = "",
    ) -> "RunOutcome":
        return cls(
            status=RunStatus.ERROR,
            transcript=list(transcript),
            error_kind=error_kind,
            error=error,
            message=message,
        )

    @property
    def debate_turns(self) -> list[Turn]:
        """Critic and Defender turns only."""
        return [t for t in self.transcript if t.speaker is not Speaker.SYSTEM]

    def to_status_event(self) -> dict:
        """Terminal status payload for the observer."""
        if self.status is RunStatus.COMPLETED:
            return {"status": RunStatus.COMPLETED.value}
        if self.status is RunStatus.STOPPED:
            return {"status": RunStatus.STOPPED.value, "cancelled": True}
        return {
            "status": RunStatus.ERROR.value,
            "message": self.message,
            "errorKind": (self.error_kind or ErrorKind.GENERIC).value,
        }

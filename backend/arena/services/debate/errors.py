"""
Debate Errors — Failure taxonomy and the classifier that maps any
exception onto it.

WHAT THIS DOES:
Defines the exceptions the debate loop raises itself, and classifies
arbitrary upstream failures (OpenAI, retrieval, transport) into one of
three buckets the loop acts on:
- RateLimited: the provider quota is exhausted (HTTP 429)
- Cancelled: the observer asked us to stop
- Generic: anything else

WHY A CLASSIFIER:
Persona actors wrap provider errors in different ways. Some raise the
OpenAI exception directly, some wrap it, some only carry "429" in the
message. The loop should not care which; it only needs the bucket.

USAGE:
    kind = classify_error(exc)
    if kind is ErrorKind.RATE_LIMITED:
        ...
"""

from typing import Optional

import openai

from arena.services.debate.models import ErrorKind


class DebateError(Exception):
    """Base class for errors raised by the debate services."""

    kind: ErrorKind = ErrorKind.GENERIC


class InvalidTopicError(DebateError):
    """The run was started without a usable topic."""

    kind = ErrorKind.INVALID_TOPIC


class InvalidActorError(DebateError):
    """An actor does not expose a respond() capability."""

    kind = ErrorKind.INVALID_ACTOR


class EmptyResponseError(DebateError):
    """An actor returned nothing usable."""

    kind = ErrorKind.EMPTY_RESPONSE


class RateLimitedError(DebateError):
    """The external per-minute quota was exhausted."""

    kind = ErrorKind.RATE_LIMITED


class DebateCancelledError(DebateError):
    """A stop was requested for the session."""

    kind = ErrorKind.CANCELLED


class DocumentProcessingError(DebateError):
    """The uploaded document could not be turned into evidence."""


class ConfigurationError(DebateError):
    """A required setting (such as the OpenAI API key) is missing."""


class SessionAlreadyActiveError(DebateError):
    """A debate is already running for this session identifier."""

    def __init__(self, session_id: str):
        super().__init__(f"A debate is already running for session '{session_id}'")
        self.session_id = session_id


RATE_LIMIT_STATUS = 429
_RATE_LIMIT_MARKERS = ("429", "too many requests")


def _status_of(exc: BaseException) -> Optional[int]:
    """Pull an HTTP status off an exception, wherever the client put it."""
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value
    return None


def is_rate_limit_error(exc: BaseException) -> bool:
    """True if the exception (or anything in its cause chain) is a 429."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, (RateLimitedError, openai.RateLimitError)):
            return True
        if _status_of(current) == RATE_LIMIT_STATUS:
            return True
        message = str(current).lower()
        if any(marker in message for marker in _RATE_LIMIT_MARKERS):
            return True
        current = current.__cause__
    return False


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Map a failure into RateLimited, Cancelled, or Generic.

    Cancellation is checked first so a stop that happens to race with a
    429 is still reported as the user's stop.
    """
    if isinstance(exc, DebateCancelledError):
        return ErrorKind.CANCELLED
    if is_rate_limit_error(exc):
        return ErrorKind.RATE_LIMITED
    return ErrorKind.GENERIC


def caller_message(exc: BaseException, kind: ErrorKind) -> str:
    """Message surfaced to the caller in the terminal status event."""
    if kind is ErrorKind.RATE_LIMITED:
        return "Rate limit reached during debate loop."
    if kind is ErrorKind.CANCELLED:
        return "Debate loop stopped by user."
    return str(exc) or type(exc).__name__

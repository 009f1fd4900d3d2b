"""
Tests for the actor invoker, the call-shape adapter, and error classification.

Run with: pytest backend/tests/test_invoker_and_errors.py -v
"""

import httpx
import openai
import pytest

from arena.services.debate.errors import (
    DebateCancelledError,
    EmptyResponseError,
    InvalidActorError,
    RateLimitedError,
    caller_message,
    classify_error,
)
from arena.services.debate.invoker import ActorInvoker
from arena.services.debate.models import ErrorKind
from arena.services.debate.protocols import InvokeShapeAdapter, as_actor


class AsyncActor:
    def __init__(self, reply):
        self.reply = reply

    async def respond(self, topic, prior_context):
        return self.reply


class SyncActor:
    def respond(self, topic, prior_context):
        return f"  sync reply to {topic}  "


# =============================================================================
# ACTOR INVOKER
# =============================================================================

@pytest.mark.asyncio
async def test_invoke_trims_response():
    text = await ActorInvoker().invoke(AsyncActor("\n  Strong point.  \n"), "topic", "ctx")
    assert text == "Strong point."


@pytest.mark.asyncio
async def test_invoke_accepts_sync_actor():
    text = await ActorInvoker().invoke(SyncActor(), "topic", "ctx")
    assert text == "sync reply to topic"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", "   \n", None, 42, ["text"]])
async def test_invoke_rejects_unusable_response(reply):
    with pytest.raises(EmptyResponseError):
        await ActorInvoker().invoke(AsyncActor(reply), "topic", "ctx")


@pytest.mark.asyncio
@pytest.mark.parametrize("actor", [None, object(), type("NotCallable", (), {"respond": "nope"})()])
async def test_invoke_rejects_invalid_actor(actor):
    with pytest.raises(InvalidActorError):
        await ActorInvoker().invoke(actor, "topic", "ctx")


@pytest.mark.asyncio
async def test_invoke_propagates_underlying_error_untouched():
    """No wrapping, no retry: the exact exception object comes back out."""
    error = ConnectionError("socket closed")
    calls = []

    class Broken:
        async def respond(self, topic, prior_context):
            calls.append(topic)
            raise error

    with pytest.raises(ConnectionError) as exc_info:
        await ActorInvoker().invoke(Broken(), "topic", "ctx")

    assert exc_info.value is error
    assert len(calls) == 1


# =============================================================================
# CALL-SHAPE ADAPTER
# =============================================================================

@pytest.mark.asyncio
async def test_invoke_shape_adapter_passes_payload():
    seen = []

    class Runnable:
        async def invoke(self, payload):
            seen.append(payload)
            return "adapted"

    actor = as_actor(Runnable())

    assert isinstance(actor, InvokeShapeAdapter)
    assert await ActorInvoker().invoke(actor, "topic", "ctx") == "adapted"
    assert seen == [{"topic": "topic", "priorContext": "ctx"}]


def test_as_actor_prefers_respond():
    actor = SyncActor()
    assert as_actor(actor) is actor


def test_as_actor_leaves_invalid_objects_for_the_invoker():
    candidate = object()
    assert as_actor(candidate) is candidate


def test_adapter_rejects_object_without_invoke():
    with pytest.raises(InvalidActorError):
        InvokeShapeAdapter(object())


# =============================================================================
# ERROR CLASSIFIER
# =============================================================================

def _openai_rate_limit_error() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request)
    return openai.RateLimitError("Rate limit exceeded", response=response, body=None)


class _WithStatus(Exception):
    status = 429


class _WithResponse(Exception):
    def __init__(self, code):
        super().__init__("upstream failure")
        self.response = type("Resp", (), {"status_code": code})()


@pytest.mark.parametrize(
    "error",
    [
        RateLimitedError("quota"),
        _openai_rate_limit_error(),
        _WithStatus("boom"),
        _WithResponse(429),
        RuntimeError("HTTP 429 from provider"),
        RuntimeError("Too Many Requests"),
    ],
)
def test_rate_limit_errors_are_classified(error):
    assert classify_error(error) is ErrorKind.RATE_LIMITED


def test_rate_limit_detected_through_cause_chain():
    try:
        try:
            raise _openai_rate_limit_error()
        except openai.RateLimitError as inner:
            raise RuntimeError("Failed to generate persona response") from inner
    except RuntimeError as outer:
        assert classify_error(outer) is ErrorKind.RATE_LIMITED


def test_cancellation_wins_over_rate_limit():
    assert classify_error(DebateCancelledError("429 while stopping")) is ErrorKind.CANCELLED


@pytest.mark.parametrize(
    "error",
    [RuntimeError("model exploded"), _WithResponse(500), EmptyResponseError("blank"), ValueError("")],
)
def test_everything_else_is_generic(error):
    assert classify_error(error) is ErrorKind.GENERIC


def test_caller_messages():
    assert caller_message(RuntimeError("x"), ErrorKind.RATE_LIMITED) == "Rate limit reached during debate loop."
    assert caller_message(RuntimeError("x"), ErrorKind.CANCELLED) == "Debate loop stopped by user."
    assert caller_message(RuntimeError("model exploded"), ErrorKind.GENERIC) == "model exploded"
    assert caller_message(ValueError(), ErrorKind.GENERIC) == "ValueError"

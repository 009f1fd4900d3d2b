"""
Shared fakes for the debate tests.

None of these touch the network: actors answer deterministically, and
the paced clock sleeps for zero real time while recording what it was
asked to wait.
"""

import asyncio
import re

import pytest

from arena.services.debate.pacing import PacedClock
from arena.services.debate.orchestrator import DebateOrchestrator

_ROUND_RE = re.compile(r"^Round (\d+):")


def round_of(topic: str) -> int:
    """Round number from an orchestrator instruction ("Round 2: ...")."""
    match = _ROUND_RE.match(topic)
    return int(match.group(1)) if match else 0


class EchoActor:
    """Answers "<role> on round <n>" and remembers every call."""

    def __init__(self, role: str):
        self.role = role
        self.calls: list[tuple[str, str]] = []

    async def respond(self, topic: str, prior_context: str) -> str:
        self.calls.append((topic, prior_context))
        return f"{self.role} on round {round_of(topic)}"


class FailingActor(EchoActor):
    """Echoes until round `fail_on_round`, then raises `error`."""

    def __init__(self, role: str, fail_on_round: int, error: Exception):
        super().__init__(role)
        self.fail_on_round = fail_on_round
        self.error = error

    async def respond(self, topic: str, prior_context: str) -> str:
        if round_of(topic) == self.fail_on_round:
            self.calls.append((topic, prior_context))
            raise self.error
        return await super().respond(topic, prior_context)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records durations and yields once."""

    def __init__(self):
        self.durations: list[float] = []
        self.hooks = {}

    async def __call__(self, seconds: float) -> None:
        self.durations.append(seconds)
        hook = self.hooks.get(len(self.durations))
        if hook is not None:
            hook()
        await asyncio.sleep(0)


@pytest.fixture
def critic():
    return EchoActor("Critic")


@pytest.fixture
def defender():
    return EchoActor("Defender")


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def orchestrator(fake_sleep):
    """Orchestrator with the real 6.5s gap and 250ms tick, but no real waiting."""
    return DebateOrchestrator(
        clock=PacedClock(poll_interval=0.25, sleep=fake_sleep),
        turn_delay=6.5,
    )


@pytest.fixture
def actor_classes():
    """Give test modules access to the fake actor classes."""
    return EchoActor, FailingActor

"""
Tests for the HTTP endpoints and the WebSocket push channel.

Run with: pytest backend/tests/test_api.py -v

The app runs in-process through FastAPI's TestClient. Tests that start
a debate swap in a session manager with fake actors, so no PDF parsing
or OpenAI calls happen.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from arena.main import app
from arena.services.debate.cancellation import CancellationRegistry
from arena.services.debate.orchestrator import CANCELLED_MESSAGE, DebateOrchestrator
from arena.services.debate.pacing import PacedClock
from arena.services.session_manager import DebateSessionManager

PDF_FILE = {"document": ("paper.pdf", b"%PDF-1.4 fake", "application/pdf")}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def use_fake_manager(factory, turn_delay=0.0, poll_interval=0.25):
    """Replace the app's session manager with one driven by `factory`."""
    app.state.session_manager = DebateSessionManager(
        CancellationRegistry(),
        app.state.hub,
        orchestrator=DebateOrchestrator(
            clock=PacedClock(poll_interval),
            turn_delay=turn_delay,
        ),
        actor_factory=factory,
    )
    return app.state.session_manager


# =============================================================================
# BASICS
# =============================================================================

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_websocket_sends_ready_event(client):
    with client.websocket_connect("/ws") as ws:
        ready = ws.receive_json()

    assert ready["event"] == "server:ready"
    assert ready["sessionId"]
    assert "ready" in ready["message"]


def test_each_socket_gets_its_own_session(client):
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        assert first.receive_json()["sessionId"] != second.receive_json()["sessionId"]


# =============================================================================
# START VALIDATION
# =============================================================================

def test_start_without_document_is_rejected(client):
    response = client.post("/api/debate", data={"topic": "Is X ethical?", "sessionId": "s1"})
    assert response.status_code == 400
    assert "document" in response.json()["detail"]


@pytest.mark.parametrize("topic", ["", "   "])
def test_start_without_topic_is_rejected(client, topic):
    response = client.post(
        "/api/debate", files=PDF_FILE, data={"topic": topic, "sessionId": "s1"}
    )
    assert response.status_code == 400
    assert "topic" in response.json()["detail"]


def test_start_without_session_id_is_rejected(client):
    response = client.post("/api/debate", files=PDF_FILE, data={"topic": "Is X ethical?"})
    assert response.status_code == 400
    assert "sessionId" in response.json()["detail"]


def test_start_with_empty_file_is_rejected(client):
    response = client.post(
        "/api/debate",
        files={"document": ("empty.pdf", b"", "application/pdf")},
        data={"topic": "Is X ethical?", "sessionId": "s1"},
    )
    assert response.status_code == 400


def test_second_start_for_running_session_conflicts(client):
    async def never_ready(document, should_cancel):
        await asyncio.sleep(3600)

    use_fake_manager(never_ready)
    form = {"topic": "Is X ethical?", "sessionId": "s1", "totalRounds": "2"}

    first = client.post("/api/debate", files=PDF_FILE, data=form)
    assert first.status_code == 202
    assert first.json() == {"success": True, "message": "Debate started.", "sessionId": "s1"}

    second = client.post("/api/debate", files=PDF_FILE, data=form)
    assert second.status_code == 409

    assert client.get("/api/debate/sessions").json() == {"active": ["s1"]}


# =============================================================================
# STOP ENDPOINT
# =============================================================================

def test_stop_is_acknowledged_for_any_session(client):
    response = client.post("/api/debate/stop", json={"sessionId": "unknown"})
    assert response.status_code == 202
    assert response.json() == {"success": True, "message": "Stop requested."}


def test_stop_requires_session_id(client):
    response = client.post("/api/debate/stop", json={})
    assert response.status_code == 422


def test_sessions_empty_when_idle(client):
    assert client.get("/api/debate/sessions").json() == {"active": []}


# =============================================================================
# END TO END OVER THE SOCKET
# =============================================================================

def test_debate_streams_turns_and_status(client, actor_classes):
    EchoActor, _ = actor_classes

    async def factory(document, should_cancel):
        return EchoActor("Critic"), EchoActor("Defender")

    use_fake_manager(factory)

    with client.websocket_connect("/ws") as ws:
        session_id = ws.receive_json()["sessionId"]

        response = client.post(
            "/api/debate",
            files=PDF_FILE,
            data={"topic": "Is X ethical?", "sessionId": session_id, "totalRounds": "2"},
        )
        assert response.status_code == 202

        events = [ws.receive_json() for _ in range(5)]

    assert [e["event"] for e in events] == ["debate:turn"] * 4 + ["debate:status"]
    assert [e["data"] for e in events[:4]] == [
        {"speaker": "Critic", "text": "Critic on round 1", "round": 1},
        {"speaker": "Defender", "text": "Defender on round 1", "round": 1},
        {"speaker": "Critic", "text": "Critic on round 2", "round": 2},
        {"speaker": "Defender", "text": "Defender on round 2", "round": 2},
    ]
    assert events[4]["data"] == {"status": "completed"}


def test_stop_message_on_socket_ends_debate(client, actor_classes):
    EchoActor, _ = actor_classes

    async def factory(document, should_cancel):
        return EchoActor("Critic"), EchoActor("Defender")

    # Long gap after each turn, short ticks so the stop is noticed quickly
    use_fake_manager(factory, turn_delay=60.0, poll_interval=0.01)

    with client.websocket_connect("/ws") as ws:
        session_id = ws.receive_json()["sessionId"]
        client.post(
            "/api/debate",
            files=PDF_FILE,
            data={"topic": "Is X ethical?", "sessionId": session_id},
        )

        first = ws.receive_json()
        assert first["data"]["speaker"] == "Critic"

        ws.send_json({"event": "debate:stop"})
        system_turn = ws.receive_json()
        status = ws.receive_json()

    assert system_turn["data"] == {"speaker": "System", "text": CANCELLED_MESSAGE, "round": 1}
    assert status == {"event": "debate:status", "data": {"status": "stopped", "cancelled": True}}


def test_failed_setup_reports_error_status(client):
    async def factory(document, should_cancel):
        raise ValueError("Could not read PDF")

    use_fake_manager(factory)

    with client.websocket_connect("/ws") as ws:
        session_id = ws.receive_json()["sessionId"]
        client.post(
            "/api/debate",
            files=PDF_FILE,
            data={"topic": "Is X ethical?", "sessionId": session_id},
        )
        status = ws.receive_json()

    assert status == {
        "event": "debate:status",
        "data": {"status": "error", "message": "Could not read PDF", "errorKind": "Generic"},
    }

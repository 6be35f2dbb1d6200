import asyncio

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from backend.wellspring.core.security import create_access_token
from backend.wellspring.db.base import get_db
from backend.wellspring.errors import InfrastructureError
from backend.wellspring.main import app
from backend.wellspring.orchestration.classify import ClassifierGateway, get_classifier_gateway
from backend.wellspring.orchestration.llm import (
    FALLBACK_REPLY,
    Completion,
    CompletionGateway,
    Usage,
    get_completion_gateway,
)
from backend.wellspring.services.activity import get_audit_logger
from backend.wellspring.services.mood import MoodService


class Upstreams:
    """Programmable fakes for the completion and classifier services."""

    def __init__(self):
        self.reply = "Thank you for sharing. What helps you unwind?"
        self.completion_status = 200
        self.mood = "joy"
        self.classifier_status = 200
        self.prompts = []

    def completion(self, request: httpx.Request) -> httpx.Response:
        import json

        self.prompts.append(json.loads(request.content))
        if self.completion_status != 200:
            return httpx.Response(self.completion_status, text="upstream exploded")
        candidates = []
        if self.reply:
            candidates = [{"content": {"parts": [{"text": self.reply}]}, "finishReason": "STOP"}]
        return httpx.Response(
            200,
            json={"candidates": candidates, "usageMetadata": {"totalTokenCount": 42}},
        )

    def classifier(self, request: httpx.Request) -> httpx.Response:
        if self.classifier_status != 200:
            return httpx.Response(self.classifier_status, text="model offline")
        return httpx.Response(200, json={"mood": self.mood})


class RecordingAudit:
    def __init__(self):
        self.events = []

    def record(self, event):
        self.events.append(event)
        return True

    @property
    def tags(self):
        return [e.activity for e in self.events]


@pytest.fixture()
def upstreams():
    return Upstreams()


@pytest.fixture()
def audit():
    return RecordingAudit()


@pytest.fixture()
async def client(db, test_settings, upstreams, audit):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_completion_gateway] = lambda: CompletionGateway(
        test_settings, transport=httpx.MockTransport(upstreams.completion)
    )
    app.dependency_overrides[get_classifier_gateway] = lambda: ClassifierGateway(
        test_settings, transport=httpx.MockTransport(upstreams.classifier)
    )
    app.dependency_overrides[get_audit_logger] = lambda: audit

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def auth(user_id=1):
    token = create_access_token({"user_id": user_id, "user_type": "free"})
    return {"Authorization": f"Bearer {token}", "User-Agent": "wellspring-tests"}


@pytest.mark.anyio
async def test_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


@pytest.mark.anyio
async def test_requests_without_token_are_rejected(client, audit):
    r = await client.post("/v1/chat/sessions")
    assert r.status_code == 401

    r = await client.get("/v1/journal", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert audit.events == []


@pytest.mark.anyio
async def test_session_lifecycle(client, audit):
    r = await client.post("/v1/chat/sessions", headers=auth())
    assert r.status_code == 201, r.text
    session_id = r.json()["id"]
    assert r.json()["end_time"] is None

    r = await client.post(
        f"/v1/chat/sessions/{session_id}/messages", json={"content": "hello"}, headers=auth()
    )
    assert r.status_code == 201
    assert r.json()["sender"] == "user"

    r = await client.patch(f"/v1/chat/sessions/{session_id}", headers=auth())
    assert r.status_code == 200
    assert r.json()["end_time"] is not None

    r = await client.patch(f"/v1/chat/sessions/{session_id}", headers=auth())
    assert r.status_code == 409
    assert r.json()["code"] == "session_already_ended"

    r = await client.post(
        f"/v1/chat/sessions/{session_id}/messages", json={"content": "still there?"}, headers=auth()
    )
    assert r.status_code == 409
    assert r.json()["code"] == "session_ended"

    r = await client.get(f"/v1/chat/sessions/{session_id}", headers=auth(user_id=2))
    assert r.status_code == 404

    r = await client.delete(f"/v1/chat/sessions/{session_id}", headers=auth())
    assert r.status_code == 204

    assert audit.tags == [
        "chat_session_start",
        "chat_message_send",
        "chat_session_end",
        "chat_session_end",
        "chat_message_send",
        f"GET_/v1/chat/sessions/{session_id}",
        "chat_session_delete",
    ]
    assert audit.events[0].user_id == 1
    assert audit.events[0].user_agent == "wellspring-tests"
    assert audit.events[5].user_id == 2


@pytest.mark.anyio
async def test_list_sessions_and_messages(client):
    ids = []
    for _ in range(3):
        r = await client.post("/v1/chat/sessions", headers=auth())
        ids.append(r.json()["id"])
    for i in range(4):
        await client.post(f"/v1/chat/sessions/{ids[0]}/messages", json={"content": f"m{i}"}, headers=auth())

    r = await client.get("/v1/chat/sessions", params={"limit": 2}, headers=auth())
    body = r.json()
    assert body["total"] == 3
    assert body["limit"] == 2
    assert [s["id"] for s in body["items"]] == [ids[2], ids[1]]

    r = await client.get(f"/v1/chat/sessions/{ids[0]}/messages", params={"limit": 3}, headers=auth())
    body = r.json()
    assert [m["content"] for m in body["items"]] == ["m3", "m2", "m1"]
    assert body["total"] == 4

    oldest = body["items"][-1]["id"]
    r = await client.get(
        f"/v1/chat/sessions/{ids[0]}/messages", params={"before_id": oldest}, headers=auth()
    )
    assert [m["content"] for m in r.json()["items"]] == ["m0"]

    r = await client.get(
        "/v1/chat/sessions",
        params={"start_date": "2030-01-02T00:00:00Z", "end_date": "2030-01-01T00:00:00Z"},
        headers=auth(),
    )
    assert r.status_code == 400


@pytest.mark.anyio
async def test_companion_turn_in_session(client, upstreams, audit):
    session_id = (await client.post("/v1/chat/sessions", headers=auth())).json()["id"]

    r = await client.post(
        "/v1/chat/companion",
        json={"message": "I had a stressful day", "session_id": session_id},
        headers=auth(),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["response"] == upstreams.reply
    assert body["session_id"] == session_id
    assert body["tokens_used"] == 42
    assert body["model"] == "gemini-test"
    assert body["message_id"] is not None

    contents = upstreams.prompts[0]["contents"]
    assert [c["role"] for c in contents] == ["user", "model", "user"]
    assert contents[-1]["parts"][0]["text"] == "I had a stressful day"

    r = await client.get(f"/v1/chat/sessions/{session_id}/messages", headers=auth())
    assert [m["sender"] for m in r.json()["items"]] == ["assistant", "user"]
    assert "chat_companion" in audit.tags


@pytest.mark.anyio
async def test_companion_empty_candidates_stores_fallback(client, upstreams):
    upstreams.reply = ""
    session_id = (await client.post("/v1/chat/sessions", headers=auth())).json()["id"]

    r = await client.post(
        "/v1/chat/companion", json={"message": "hi", "session_id": session_id}, headers=auth()
    )
    assert r.status_code == 200
    assert r.json()["response"] == FALLBACK_REPLY

    r = await client.get(f"/v1/chat/sessions/{session_id}/messages", headers=auth())
    assert r.json()["items"][0]["content"] == FALLBACK_REPLY


@pytest.mark.anyio
async def test_companion_upstream_failure_is_bad_gateway(client, upstreams, audit):
    upstreams.completion_status = 500

    r = await client.post("/v1/chat/companion", json={"message": "hello"}, headers=auth())

    assert r.status_code == 502
    assert r.json()["code"] == "upstream_error"
    assert audit.tags == ["chat_companion"]


@pytest.mark.anyio
async def test_journal_analyze_joy(client, audit):
    r = await client.post("/v1/journal/analyze", json={"content": "Today was wonderful"}, headers=auth())
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["journal"]["content"] == "Today was wonderful"
    assert body["mood_entry"]["primary_emotion"] == "joy"
    assert body["mood_entry"]["intensity_level"] == 1.0
    assert body["mood_entry"]["entry_type"] == "journal-derived"
    assert body["mood_entry"]["journal_id"] == body["journal"]["id"]

    r = await client.get("/v1/mood", params={"entry_type": "journal-derived"}, headers=auth())
    assert r.json()["total"] == 1
    assert audit.tags[0] == "journal_analyze"


@pytest.mark.anyio
async def test_journal_analyze_classifier_down(client, upstreams):
    upstreams.classifier_status = 503

    r = await client.post("/v1/journal/analyze", json={"content": "Anything"}, headers=auth())
    assert r.status_code == 502
    assert r.json()["code"] == "classification_failed"

    r = await client.get("/v1/journal", headers=auth())
    assert r.json()["total"] == 0


@pytest.mark.anyio
async def test_journal_analyze_partial_success_returns_journal(client, monkeypatch):
    def broken_create(self, **kwargs):
        raise InfrastructureError("store unavailable during create_mood_entry")

    monkeypatch.setattr(MoodService, "create", broken_create)

    r = await client.post("/v1/journal/analyze", json={"content": "Half saved"}, headers=auth())
    assert r.status_code == 500
    body = r.json()
    assert body["code"] == "mood_entry_persist_failed"
    assert body["journal"]["content"] == "Half saved"

    r = await client.get(f"/v1/journal/{body['journal']['id']}", headers=auth())
    assert r.status_code == 200


@pytest.mark.anyio
async def test_journal_crud(client, audit):
    r = await client.post("/v1/journal", json={"content": "dear diary"}, headers=auth())
    assert r.status_code == 201
    journal_id = r.json()["id"]

    r = await client.patch(f"/v1/journal/{journal_id}", json={"content": "dear diary, again"}, headers=auth())
    assert r.json()["content"] == "dear diary, again"

    r = await client.get(f"/v1/journal/{journal_id}", headers=auth(user_id=2))
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"

    r = await client.post("/v1/journal", json={"content": ""}, headers=auth())
    assert r.status_code == 400

    r = await client.delete(f"/v1/journal/{journal_id}", headers=auth())
    assert r.status_code == 204

    assert audit.tags[:2] == ["journal_create", "journal_update"]
    assert audit.tags[-1] == "journal_delete"


@pytest.mark.anyio
async def test_mood_entries(client):
    r = await client.post(
        "/v1/mood",
        json={"entry_type": "daily", "primary_emotion": "calm", "intensity_level": 0.6},
        headers=auth(),
    )
    assert r.status_code == 201
    entry_id = r.json()["id"]

    r = await client.post(
        "/v1/mood",
        json={"entry_type": "daily", "primary_emotion": "calm", "intensity_level": 1.5},
        headers=auth(),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"

    r = await client.post(
        "/v1/mood",
        json={"entry_type": "daily", "primary_emotion": "calm", "intensity_level": 0.5, "journal_id": 999},
        headers=auth(),
    )
    assert r.status_code == 404

    r = await client.get(f"/v1/mood/{entry_id}", headers=auth())
    assert r.json()["primary_emotion"] == "calm"


@pytest.mark.anyio
async def test_activity_history(client, db):
    from backend.wellspring.pagination import utcnow
    from backend.wellspring.repositories.activity import ActivityRepository

    repo = ActivityRepository(db)
    repo.append(user_id=1, activity="journal_create", timestamp=utcnow(), ip_address="127.0.0.1")
    repo.append(user_id=2, activity="journal_create", timestamp=utcnow())

    r = await client.get("/v1/activity", headers=auth())
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 1
    assert body["limit"] == 20
    assert body["items"][0]["ip_address"] == "127.0.0.1"


class SlowGateway:
    """Completion stub that holds the request open long enough to overlap."""

    async def complete(self, turns, timeout=None):
        await asyncio.sleep(0.2)
        return Completion(text="Still here with you.", model="stub-model", usage=Usage(total_tokens=5))


@pytest.mark.anyio
async def test_overlapping_requests_get_their_own_db_session(engine, audit, monkeypatch):
    from backend.wellspring.db import base as db_base

    # Real SessionLocal and get_db, bound to the test database
    monkeypatch.setitem(db_base.SessionLocal.kw, "bind", engine)
    opened = []

    def tracking_get_db():
        sessions = db_base.get_db()
        session = next(sessions)
        opened.append(session)
        try:
            yield session
        finally:
            sessions.close()

    app.dependency_overrides[get_db] = tracking_get_db
    app.dependency_overrides[get_completion_gateway] = lambda: SlowGateway()
    app.dependency_overrides[get_audit_logger] = lambda: audit

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
            first, second = await asyncio.gather(
                c.post("/v1/chat/companion", json={"message": "hello"}, headers=auth(1)),
                c.post("/v1/chat/companion", json={"message": "hi"}, headers=auth(2)),
            )
    finally:
        app.dependency_overrides.clear()

    assert first.status_code == 200, first.text
    assert second.status_code == 200, second.text
    assert len(opened) == 2
    assert opened[0] is not opened[1]

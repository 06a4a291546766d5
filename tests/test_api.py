"""Tests for the HTTP API."""

import hashlib
import hmac
import json

import httpx
import pytest

from conftest import FakeGitHub
from docsync.config import settings
from docsync.database import get_session
from docsync.main import app
from docsync.services.sessions import SessionManager
from docsync.services.timers import drain_background_tasks

PATH = "docs/guide.md"
DOC = "# Guide\n\nHello world\n"
SECRET = "webhook-secret"


@pytest.fixture
async def api(store, session_factory, pr, monkeypatch):
    gh = FakeGitHub({(PATH, "main"): DOC, (PATH, pr.head_sha): DOC})
    manager = SessionManager(gh, store)
    app.state.sessions = manager

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    monkeypatch.setattr(settings, "github_webhook_secret", SECRET)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        client.gh = gh
        yield client

    await manager.close_all()
    app.dependency_overrides.clear()


async def open_doc(api) -> dict:
    response = await api.post(
        "/sessions",
        json={
            "owner": "acme",
            "repo": "docs",
            "path": PATH,
            "branch": "main",
            "user": {"uid": "u-alice", "display_name": "Alice", "external_username": "alice"},
        },
    )
    assert response.status_code == 201
    return response.json()


def signed(payload: dict) -> tuple[bytes, str]:
    body = json.dumps(payload).encode()
    digest = hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()
    return body, f"sha256={digest}"


async def test_health(api):
    response = await api.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_readiness(api):
    response = await api.get("/health/ready")

    assert response.json() == {"status": "ready", "database": "connected"}


async def test_open_session(api):
    data = await open_doc(api)

    assert data["branch"] == "main"
    assert data["save_status"] == "idle"
    assert data["active_pr"] is None
    assert data["comments"] == []


async def test_open_missing_file(api):
    response = await api.post(
        "/sessions",
        json={
            "owner": "acme",
            "repo": "docs",
            "path": "missing.md",
            "branch": "main",
            "user": {"uid": "u1", "display_name": "U"},
        },
    )

    assert response.status_code == 502


async def test_unknown_session(api):
    assert (await api.get("/sessions/nope")).status_code == 404
    assert (await api.delete("/sessions/nope")).status_code == 404


async def test_comment_lifecycle(api):
    """Test create, react, resolve and look up a comment over HTTP."""
    session_id = (await open_doc(api))["id"]
    start = DOC.index("Hello world")

    response = await api.post(
        f"/sessions/{session_id}/comments",
        json={"content": "Typo?", "selection_start": start, "selection_end": start + 11},
    )
    comment_id = response.json()["id"]

    view = (await api.get(f"/sessions/{session_id}")).json()
    assert view["active_comment_count"] == 1
    assert view["comments"][0]["anchor_text"] == "Hello world"

    response = await api.post(
        f"/sessions/{session_id}/comments/{comment_id}/reactions", json={"emoji": "\U0001F680"}
    )
    assert response.json()["reactions"] == {"\U0001F680": ["u-alice"]}

    found = (await api.get(f"/sessions/{session_id}/comments/at", params={"text": "world"})).json()
    assert found["id"] == comment_id

    await api.post(
        f"/sessions/{session_id}/comments/{comment_id}/resolution", json={"action": "resolve"}
    )
    view = (await api.get(f"/sessions/{session_id}")).json()
    assert view["resolved_comment_count"] == 1


async def test_missing_comment_is_404(api):
    session_id = (await open_doc(api))["id"]

    response = await api.post(
        f"/sessions/{session_id}/comments/missing/replies", json={"content": "x"}
    )
    assert response.status_code == 404
    response = await api.delete(f"/sessions/{session_id}/comments/missing")
    assert response.status_code == 404


async def test_content_change_and_save(api):
    session_id = (await open_doc(api))["id"]

    response = await api.put(f"/sessions/{session_id}/content", json={"content": DOC + "More\n"})
    assert response.json() == {"autosave_scheduled": True}

    response = await api.post(f"/sessions/{session_id}/save")
    assert response.json() == {"status": "saved"}
    assert api.gh.files[(PATH, "main")] == DOC + "More\n"


async def test_save_failure_is_502(api):
    session_id = (await open_doc(api))["id"]
    api.gh.failing.add("update_content")

    await api.put(f"/sessions/{session_id}/content", json={"content": "changed"})
    response = await api.post(f"/sessions/{session_id}/save")

    assert response.status_code == 502


async def test_close_session(api):
    session_id = (await open_doc(api))["id"]

    assert (await api.delete(f"/sessions/{session_id}")).status_code == 204
    assert (await api.get(f"/sessions/{session_id}")).status_code == 404


async def test_webhook_rejects_bad_signature(api):
    response = await api.post(
        "/webhooks/github",
        content=b"{}",
        headers={"X-GitHub-Event": "ping", "X-Hub-Signature-256": "sha256=bad"},
    )

    assert response.status_code == 401


async def test_webhook_ping(api):
    body, signature = signed({"zen": "hi"})
    response = await api.post(
        "/webhooks/github",
        content=body,
        headers={"X-GitHub-Event": "ping", "X-Hub-Signature-256": signature},
    )

    assert response.json() == {"status": "pong"}


async def test_review_comment_webhook_triggers_inbound_sync(api, pr):
    """Test a review comment event starts an inbound sync for matching sessions."""
    api.gh.open_prs["main"] = pr
    await open_doc(api)
    await drain_background_tasks()
    polls_before = len(api.gh.called("list_review_comments"))

    body, signature = signed(
        {
            "action": "created",
            "comment": {"id": 1, "body": "Nice", "path": PATH, "line": 3},
            "pull_request": {
                "number": pr.number,
                "head": {"sha": pr.head_sha, "ref": "main"},
                "base": {"sha": "base", "ref": "trunk"},
            },
            "repository": {"id": 1, "full_name": "acme/docs", "name": "docs"},
        }
    )
    response = await api.post(
        "/webhooks/github",
        content=body,
        headers={"X-GitHub-Event": "pull_request_review_comment", "X-Hub-Signature-256": signature},
    )
    await drain_background_tasks()

    assert response.json() == {"status": "queued", "sessions": 1}
    assert len(api.gh.called("list_review_comments")) == polls_before + 1


async def test_switch_branch_with_unsaved_changes_is_409(api):
    session_id = (await open_doc(api))["id"]
    await api.put(f"/sessions/{session_id}/content", json={"content": "changed"})

    response = await api.post(f"/sessions/{session_id}/branch", json={"branch": "feature"})
    assert response.status_code == 409

    api.gh.files[(PATH, "feature")] = "Feature\n"
    response = await api.post(
        f"/sessions/{session_id}/branch", json={"branch": "feature", "discard_changes": True}
    )
    assert response.json()["branch"] == "feature"

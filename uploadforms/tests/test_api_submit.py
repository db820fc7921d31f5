"""Test the public submission endpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from uploadforms.config import settings
from uploadforms.errors import InternalError
from uploadforms.models import Form, Submission
from uploadforms.security.session import SessionUser, issue_session_token
from uploadforms.services import submission_svc, submit_svc


@pytest.fixture
def post_commit(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    mock = AsyncMock()
    monkeypatch.setattr(submit_svc, "run_post_commit", mock)
    return mock


def _body(form: Form, **fields) -> dict:
    body = {
        "formId": str(form.id),
        "files": [
            {"url": "https://drive/1", "name": "one.pdf", "size": 10, "fieldId": "f-resume"},
            {"url": "https://drive/2", "name": "two.pdf", "size": 20, "fieldId": "f-resume"},
        ],
        "submitterName": "Grace",
        "submitterEmail": "grace@example.com",
    }
    body.update(fields)
    return body


@pytest.mark.asyncio
async def test_submit_success(
    client: AsyncClient, db: AsyncSession, published_form: Form, post_commit: AsyncMock
):
    response = await client.post("/api/submit", json=_body(published_form))
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["file_count"] == 2
    assert data["submission"]["file_name"] == "one.pdf"

    count = await db.scalar(select(func.count()).select_from(Submission))
    assert count == 2
    post_commit.assert_awaited_once()
    result = post_commit.await_args.args[0]
    assert [f.name for f in result.files] == ["one.pdf", "two.pdf"]


@pytest.mark.asyncio
async def test_snake_case_body(client: AsyncClient, published_form: Form, post_commit: AsyncMock):
    response = await client.post("/api/submit", json={
        "form_id": str(published_form.id),
        "file_url": "https://drive/x",
        "file_name": "x.txt",
    })
    assert response.status_code == 200


@pytest.mark.parametrize(
    ("fields", "status", "code"),
    [
        ({"is_accepting_responses": False}, 409, "form_closed"),
        ({"access_protection_type": "GOOGLE"}, 401, "authentication_required"),
    ],
)
@pytest.mark.asyncio
async def test_rejections_map_to_status(
    client: AsyncClient, db: AsyncSession, published_form: Form, post_commit: AsyncMock,
    fields, status, code,
):
    for key, value in fields.items():
        setattr(published_form, key, value)
    await db.commit()

    response = await client.post("/api/submit", json=_body(published_form))
    assert response.status_code == status
    assert response.json()["error"] == code
    post_commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_files(client: AsyncClient, published_form: Form, post_commit: AsyncMock):
    response = await client.post("/api/submit", json=_body(published_form, files=[]))
    assert response.status_code == 400
    assert response.json()["error"] == "missing_files"


@pytest.mark.asyncio
async def test_unknown_form(client: AsyncClient, post_commit: AsyncMock):
    response = await client.post("/api/submit", json={"formId": "nope", "files": []})
    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "detail": "Form not found"}


@pytest.mark.asyncio
async def test_google_session_overrides_identity(
    client: AsyncClient, db: AsyncSession, published_form: Form,
    post_commit: AsyncMock, monkeypatch: pytest.MonkeyPatch,
):
    monkeypatch.setattr(settings, "auth_secret", "test-secret")
    published_form.access_protection_type = "GOOGLE"
    published_form.allowed_domains = ["x.com"]
    await db.commit()

    denied = issue_session_token(SessionUser(None, "a@y.com", "Y"))
    response = await client.post(
        "/api/submit", json=_body(published_form), headers={"Authorization": f"Bearer {denied}"}
    )
    assert response.status_code == 403
    assert response.json()["error"] == "access_denied"

    allowed = issue_session_token(SessionUser(None, "a@x.com", "X"))
    response = await client.post(
        "/api/submit", json=_body(published_form), headers={"Authorization": f"Bearer {allowed}"}
    )
    assert response.status_code == 200
    assert response.json()["submission"]["submitter_email"] == "a@x.com"


@pytest.mark.asyncio
async def test_submit_rate_limited(
    client: AsyncClient, published_form: Form, post_commit: AsyncMock,
    monkeypatch: pytest.MonkeyPatch,
):
    monkeypatch.setattr(settings, "form_rate_limit_max_submissions", 1)
    monkeypatch.setattr(settings, "form_rate_limit_window_seconds", 60)
    monkeypatch.setattr(settings, "form_rate_limit_block_seconds", 60)

    first = await client.post("/api/submit", json=_body(published_form))
    second = await client.post("/api/submit", json=_body(published_form))
    assert first.status_code == 200
    assert second.status_code == 429
    assert int(second.headers["Retry-After"]) >= 1


@pytest.mark.asyncio
async def test_list_submissions(
    client: AsyncClient, published_form: Form, post_commit: AsyncMock
):
    await client.post("/api/submit", json=_body(published_form))
    response = await client.get("/api/submissions", params={"formId": str(published_form.id)})
    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 2
    assert {r["form_title"] for r in rows} == {"Resumes"}


@pytest.mark.asyncio
async def test_partial_write_reports_stored_count(
    client: AsyncClient, published_form: Form, post_commit: AsyncMock,
    monkeypatch: pytest.MonkeyPatch,
):
    failure = submission_svc.PartialWriteError(Exception("connection lost"), stored=1)
    monkeypatch.setattr(submission_svc, "create_submissions", AsyncMock(side_effect=failure))

    response = await client.post("/api/submit", json=_body(published_form))
    assert response.status_code == 500
    assert response.json() == {
        "error": "internal_error",
        "detail": "Failed to submit form",
        "stored": 1,
    }
    post_commit.assert_not_awaited()


def test_internal_error_body_omits_zero_stored():
    assert "stored" not in InternalError().to_dict()
    assert InternalError(stored=2).to_dict()["stored"] == 2

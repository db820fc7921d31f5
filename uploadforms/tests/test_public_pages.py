"""Test the public upload page."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from uploadforms.config import settings
from uploadforms.models import Form
from uploadforms.security.session import SessionUser, issue_session_token


@pytest.mark.asyncio
async def test_renders_published_form(client: AsyncClient, published_form: Form):
    response = await client.get(f"/upload/{published_form.id}")
    assert response.status_code == 200
    assert "Resumes" in response.text
    assert 'data-field-id="f-resume"' in response.text


@pytest.mark.asyncio
async def test_not_found(client: AsyncClient):
    for form_id in (str(uuid.uuid4()), "not-a-uuid"):
        response = await client.get(f"/upload/{form_id}")
        assert response.status_code == 404
        assert 'data-kind="not_found"' in response.text


@pytest.mark.asyncio
async def test_draft_is_not_public(client: AsyncClient, db: AsyncSession, published_form: Form):
    published_form.is_published = False
    await db.commit()
    response = await client.get(f"/upload/{published_form.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_closed_and_expired_are_distinct(
    client: AsyncClient, db: AsyncSession, published_form: Form
):
    published_form.is_accepting_responses = False
    await db.commit()
    closed = await client.get(f"/upload/{published_form.id}")
    assert closed.status_code == 409
    assert 'data-kind="form_closed"' in closed.text

    published_form.is_accepting_responses = True
    published_form.expiry_date = datetime.now(timezone.utc) - timedelta(days=1)
    await db.commit()
    expired = await client.get(f"/upload/{published_form.id}")
    assert expired.status_code == 410
    assert 'data-kind="form_expired"' in expired.text


@pytest.mark.asyncio
async def test_google_form_prompts_sign_in(
    client: AsyncClient, db: AsyncSession, published_form: Form
):
    published_form.access_protection_type = "GOOGLE"
    await db.commit()
    response = await client.get(f"/upload/{published_form.id}")
    assert response.status_code == 401
    assert "/auth/google/login?next=/upload/" in response.text


@pytest.mark.asyncio
async def test_google_form_access_denied(
    client: AsyncClient, db: AsyncSession, published_form: Form, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.setattr(settings, "auth_secret", "test-secret")
    published_form.access_protection_type = "GOOGLE"
    published_form.allowed_domains = ["corp.com"]
    await db.commit()

    token = issue_session_token(SessionUser(None, "me@gmail.com", "Me"))
    response = await client.get(
        f"/upload/{published_form.id}", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 403
    assert 'data-kind="access_denied"' in response.text

    token = issue_session_token(SessionUser(None, "me@corp.com", "Me"))
    response = await client.get(
        f"/upload/{published_form.id}", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 200
    assert "me@corp.com" in response.text

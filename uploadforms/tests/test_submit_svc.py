"""Tests for the submission pipeline."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from uploadforms.errors import (
    AccessDenied,
    AuthenticationRequired,
    FormClosed,
    FormExpired,
    InternalError,
    InvalidCredentials,
    MalformedInput,
    MissingFiles,
    NotFound,
)
from uploadforms.models import Form, Submission
from uploadforms.schemas.submission import SubmitRequest
from uploadforms.security.passwords import hash_password
from uploadforms.security.session import SessionUser
from uploadforms.services import metadata_sheet_svc, sheet_sync_svc, submission_svc, submit_svc

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


async def _form(db: AsyncSession, **fields) -> Form:
    data = {
        "title": "Portfolio",
        "is_published": True,
        "is_accepting_responses": True,
        "upload_fields": [{"id": "f1", "label": "Portfolio"}],
    }
    data.update(fields)
    form = Form(**data)
    db.add(form)
    await db.commit()
    await db.refresh(form)
    return form


def _payload(form: Form, **fields) -> SubmitRequest:
    data = {
        "formId": str(form.id),
        "files": [{"url": "https://files.example/a", "name": "a.pdf", "type": "application/pdf", "size": 10}],
        "submitterName": "Caller",
        "submitterEmail": "caller@example.com",
    }
    data.update(fields)
    return SubmitRequest.model_validate(data)


async def _count(db: AsyncSession) -> int:
    return await db.scalar(select(func.count()).select_from(Submission))


@pytest.mark.asyncio
async def test_public_submission_stores_caller_identity(db: AsyncSession):
    form = await _form(db)
    result = await submit_svc.submit(db, _payload(form), None, NOW)
    assert result.submission.submitter_email == "caller@example.com"
    assert result.submission.submitter_name == "Caller"
    assert await _count(db) == 1


@pytest.mark.asyncio
async def test_missing_form(db: AsyncSession):
    payload = SubmitRequest(form_id=str(uuid.uuid4()), files=[{"url": "u", "name": "n"}])
    with pytest.raises(NotFound):
        await submit_svc.submit(db, payload, None, NOW)

    with pytest.raises(NotFound):
        await submit_svc.submit(db, SubmitRequest(form_id="not-a-uuid"), None, NOW)


@pytest.mark.asyncio
async def test_closed_form_rejects_valid_submission(db: AsyncSession):
    form = await _form(db, is_accepting_responses=False)
    with pytest.raises(FormClosed):
        await submit_svc.submit(db, _payload(form), None, NOW)
    assert await _count(db) == 0


@pytest.mark.asyncio
async def test_expired_form_rejects_even_when_accepting(db: AsyncSession):
    form = await _form(db, expiry_date=NOW - timedelta(hours=1))
    with pytest.raises(FormExpired):
        await submit_svc.submit(db, _payload(form), None, NOW)


@pytest.mark.asyncio
async def test_closed_is_checked_before_expired(db: AsyncSession):
    form = await _form(db, is_accepting_responses=False, expiry_date=NOW - timedelta(hours=1))
    with pytest.raises(FormClosed):
        await submit_svc.submit(db, _payload(form), None, NOW)


@pytest.mark.asyncio
async def test_google_form_requires_session(db: AsyncSession):
    form = await _form(db, access_protection_type="GOOGLE")
    with pytest.raises(AuthenticationRequired):
        await submit_svc.submit(db, _payload(form), None, NOW)


@pytest.mark.asyncio
async def test_invited_level_is_google_gated(db: AsyncSession):
    form = await _form(db, access_level="INVITED")
    with pytest.raises(AuthenticationRequired):
        await submit_svc.submit(db, _payload(form), None, NOW)


@pytest.mark.asyncio
async def test_google_domain_allow_list(db: AsyncSession):
    form = await _form(db, access_protection_type="GOOGLE", allowed_domains=["x.com"])

    with pytest.raises(AccessDenied):
        await submit_svc.submit(db, _payload(form), SessionUser(None, "a@y.com", "Outsider"), NOW)

    result = await submit_svc.submit(
        db, _payload(form), SessionUser(None, "a@x.com", "Insider"), NOW
    )
    assert result.submission.submitter_email == "a@x.com"
    assert result.submission.submitter_name == "Insider"


@pytest.mark.asyncio
async def test_google_allowed_emails(db: AsyncSession):
    form = await _form(
        db,
        access_protection_type="GOOGLE",
        allowed_emails=["Listed@Other.org"],
    )
    with pytest.raises(AccessDenied):
        await submit_svc.submit(db, _payload(form), SessionUser(None, "someone@other.org"), NOW)
    result = await submit_svc.submit(db, _payload(form), SessionUser(None, "listed@other.org"), NOW)
    assert result.submitter_email == "listed@other.org"


@pytest.mark.asyncio
async def test_password_exact_match(db: AsyncSession):
    form = await _form(db, access_protection_type="PASSWORD", password=hash_password("open sesame"))

    for wrong in ("open", "open sesame!", " open sesame", "Open Sesame", None):
        with pytest.raises(InvalidCredentials):
            await submit_svc.submit(db, _payload(form, password=wrong), None, NOW)

    result = await submit_svc.submit(db, _payload(form, password="open sesame"), None, NOW)
    assert result.submission.submitter_email == "caller@example.com"


@pytest.mark.asyncio
async def test_password_mode_without_password_is_open(db: AsyncSession):
    form = await _form(db, access_protection_type="PASSWORD", password=None)
    result = await submit_svc.submit(db, _payload(form), None, NOW)
    assert result.submission is not None


@pytest.mark.asyncio
async def test_legacy_single_file_fields(db: AsyncSession):
    form = await _form(db)
    payload = SubmitRequest.model_validate({
        "formId": str(form.id),
        "fileUrl": "https://files.example/legacy",
        "fileName": "legacy.docx",
        "fileSize": 2048,
    })
    result = await submit_svc.submit(db, payload, None, NOW)
    assert result.submission.file_name == "legacy.docx"
    assert result.submission.file_type == "unknown"
    assert result.submission.file_size == 2048


def test_normalize_accepts_prefixed_keys():
    payload = SubmitRequest(
        form_id="x",
        files=[{"fileUrl": "https://u", "fileName": "n.txt", "fileSize": 5, "fieldId": "f1", "isFromFolder": True}],
    )
    [file] = submit_svc.normalize_files(payload)
    assert file.url == "https://u"
    assert file.name == "n.txt"
    assert file.size == 5
    assert file.field_id == "f1"
    assert file.is_from_folder is True


def test_malformed_entry_is_named():
    payload = SubmitRequest(
        form_id="x",
        files=[{"url": "https://ok", "name": "ok.pdf"}, {"url": "https://missing-name"}],
    )
    with pytest.raises(MalformedInput) as exc_info:
        submit_svc.normalize_files(payload)
    assert exc_info.value.index == 1


def test_no_files():
    with pytest.raises(MissingFiles):
        submit_svc.normalize_files(SubmitRequest(form_id="x", files=[]))


@pytest.mark.asyncio
async def test_three_files_three_rows(db: AsyncSession):
    form = await _form(db)
    files = [{"url": f"https://files.example/{i}", "name": f"{i}.png"} for i in range(3)]
    answers = [{"questionId": "q1", "answer": "blue"}]
    result = await submit_svc.submit(db, _payload(form, files=files, answers=answers), None, NOW)

    assert len(result.submissions) == 3
    assert result.submission.id == result.submissions[0].id
    rows = (await db.execute(select(Submission))).scalars().all()
    assert len(rows) == 3
    assert {r.submitter_email for r in rows} == {"caller@example.com"}
    assert all(r.answers == [{"question_id": "q1", "answer": "blue"}] for r in rows)


@pytest.mark.asyncio
async def test_storage_failure_is_internal_error(
    db: AsyncSession, monkeypatch: pytest.MonkeyPatch
):
    form = await _form(db)
    monkeypatch.setattr(
        submission_svc,
        "create_submissions",
        AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("boom"))),
    )
    with pytest.raises(InternalError):
        await submit_svc.submit(db, _payload(form), None, NOW)


@pytest.mark.asyncio
async def test_partial_write_reports_stored_count(
    db: AsyncSession, monkeypatch: pytest.MonkeyPatch
):
    form = await _form(db)
    monkeypatch.setattr(
        submission_svc,
        "create_submissions",
        AsyncMock(side_effect=submission_svc.PartialWriteError(Exception("gone"), stored=2)),
    )
    with pytest.raises(InternalError) as exc_info:
        await submit_svc.submit(db, _payload(form), None, NOW)
    assert exc_info.value.stored == 2


@pytest.mark.asyncio
async def test_post_commit_failures_are_swallowed(
    db: AsyncSession, session_factory, monkeypatch: pytest.MonkeyPatch
):
    form = await _form(db, enable_response_sheet=True, enable_metadata_spreadsheet=True)
    result = await submit_svc.submit(db, _payload(form), None, NOW)

    sync = AsyncMock(side_effect=sheet_sync_svc.SheetsPermissionError())
    append = AsyncMock(side_effect=RuntimeError("sheets down"))
    monkeypatch.setattr(sheet_sync_svc, "sync_files", sync)
    monkeypatch.setattr(metadata_sheet_svc, "append_submission", append)

    await submit_svc.run_post_commit(result, session_factory)

    sync.assert_awaited_once()
    append.assert_awaited_once()
    args = sync.await_args.args
    assert args[2] == str(result.submission.id)
    assert args[3] == "caller@example.com"
    assert await _count(db) == 1


@pytest.mark.asyncio
async def test_post_commit_skips_disabled_sync(
    db: AsyncSession, session_factory, monkeypatch: pytest.MonkeyPatch
):
    form = await _form(db)
    result = await submit_svc.submit(db, _payload(form), None, NOW)

    sync = AsyncMock()
    monkeypatch.setattr(sheet_sync_svc, "sync_files", sync)
    await submit_svc.run_post_commit(result, session_factory)
    sync.assert_not_awaited()


@pytest.mark.asyncio
async def test_google_listed_email_outside_allowed_domains(db: AsyncSession):
    form = await _form(
        db,
        access_protection_type="GOOGLE",
        allowed_domains=["x.com"],
        allowed_emails=["guest@y.com"],
    )
    result = await submit_svc.submit(db, _payload(form), SessionUser(None, "guest@y.com"), NOW)
    assert result.submitter_email == "guest@y.com"

    result = await submit_svc.submit(db, _payload(form), SessionUser(None, "staff@x.com"), NOW)
    assert result.submitter_email == "staff@x.com"

    with pytest.raises(AccessDenied) as excinfo:
        await submit_svc.submit(db, _payload(form), SessionUser(None, "other@y.com"), NOW)
    assert excinfo.value.message == AccessDenied.default_message

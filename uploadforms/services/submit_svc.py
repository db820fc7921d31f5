"""Public submission pipeline.

Checks run in a fixed order and each one can reject the request before
anything is written:

    existence -> identity (GOOGLE) -> password -> accepting -> expiry -> files

Accepted submissions are stored as one row per file. Mirroring into Google
Sheets happens afterwards in ``run_post_commit``, which never raises.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import async_session_factory
from ..errors import (
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
from ..models.form import Form, Submission
from ..schemas.submission import SubmitRequest, SubmittedFile
from ..security.passwords import verify_password
from ..security.session import SessionUser
from . import form_svc, metadata_sheet_svc, sheet_sync_svc, submission_svc
from .form_status import is_expired, utcnow

log = logging.getLogger(__name__)

# Older clients send per-file keys with a "file" prefix
FILE_KEY_ALIASES = {
    "fileUrl": "url",
    "file_url": "url",
    "fileName": "name",
    "file_name": "name",
    "fileType": "type",
    "file_type": "type",
    "fileSize": "size",
    "file_size": "size",
}


@dataclass
class SubmitResult:
    submission: Submission
    submissions: list[Submission]
    files: list[SubmittedFile]
    submitter_name: str | None
    submitter_email: str | None
    answers: list[dict[str, Any]] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def form_id(self) -> uuid.UUID:
        return self.submission.form_id


def requires_google_sign_in(form: Form) -> bool:
    return form.access_protection_type == "GOOGLE" or form.access_level == "INVITED"


def _normalized(values: list[str] | None) -> list[str]:
    return [v.strip().lower().lstrip("@") for v in values or [] if isinstance(v, str) and v.strip()]


def check_google_access(form: Form, session_user: SessionUser | None) -> SessionUser:
    """Require a signed-in caller whose account the form allows.

    With allow lists set, the caller's email must be listed or its domain
    allowed; either list is enough.
    """
    if session_user is None:
        raise AuthenticationRequired()

    allowed_domains = _normalized(form.allowed_domains)
    allowed_emails = _normalized(form.allowed_emails)
    if not allowed_domains and not allowed_emails:
        return session_user
    if session_user.email.lower() in allowed_emails or session_user.domain in allowed_domains:
        return session_user

    if allowed_emails:
        raise AccessDenied()
    raise AccessDenied(
        f"Accounts from {session_user.domain or 'this domain'} are not allowed to submit this form"
    )


def normalize_files(payload: SubmitRequest) -> list[SubmittedFile]:
    """Canonical file list from ``files[]`` or the legacy single-file fields."""
    if payload.files:
        entries: list[Any] = list(payload.files)
    elif payload.file_url or payload.file_name:
        entries = [{
            "url": payload.file_url,
            "name": payload.file_name,
            "type": payload.file_type,
            "size": payload.file_size,
        }]
    else:
        entries = []

    files: list[SubmittedFile] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise MalformedInput(f"File entry {index} is not an object", index=index)
        data = dict(entry)
        for alias, key in FILE_KEY_ALIASES.items():
            if data.get(key) in (None, "") and data.get(alias) not in (None, ""):
                data[key] = data[alias]

        url = str(data.get("url") or "").strip()
        name = str(data.get("name") or "").strip()
        if not url or not name:
            raise MalformedInput(f"File entry {index} is missing a url or name", index=index)
        data.update(url=url, name=name)
        if not data.get("type"):
            data["type"] = "unknown"
        if data.get("size") is None:
            data["size"] = 0

        try:
            files.append(SubmittedFile.model_validate(data))
        except ValidationError as exc:
            raise MalformedInput(f"File entry {index} is invalid", index=index) from exc

    if not files:
        raise MissingFiles()
    return files


async def _load_form(db: AsyncSession, form_id: str | None) -> Form:
    if not form_id:
        raise MalformedInput("Missing form ID")
    try:
        parsed = uuid.UUID(str(form_id))
    except ValueError:
        raise NotFound()
    form = await form_svc.get_form(db, parsed)
    if not form:
        raise NotFound()
    return form


async def submit(
    db: AsyncSession,
    payload: SubmitRequest,
    session_user: SessionUser | None = None,
    now: datetime | None = None,
) -> SubmitResult:
    form = await _load_form(db, payload.form_id)

    submitter_name = payload.submitter_name
    submitter_email = payload.submitter_email
    if requires_google_sign_in(form):
        user = check_google_access(form, session_user)
        submitter_name, submitter_email = user.name, user.email

    if form.access_protection_type == "PASSWORD" and form.password:
        if not verify_password(payload.password, form.password):
            raise InvalidCredentials()

    if not form.is_accepting_responses:
        raise FormClosed()
    if is_expired(form, now):
        raise FormExpired()

    files = normalize_files(payload)
    answers = [a.model_dump() for a in payload.answers]
    rows = submission_svc.build_rows(
        form.id,
        files,
        group_id=uuid.uuid4(),
        answers=answers,
        submitter_name=submitter_name,
        submitter_email=submitter_email,
        meta=payload.metadata,
    )

    try:
        submissions = await submission_svc.create_submissions(db, rows)
    except submission_svc.PartialWriteError as exc:
        log.error("Stored %d of %d files for form %s before failing: %s",
                  exc.stored, len(rows), form.id, exc.original)
        raise InternalError(stored=exc.stored) from exc
    except SQLAlchemyError as exc:
        log.exception("Failed to store submission for form %s", form.id)
        raise InternalError() from exc

    log.info("Stored %d files for form %s", len(submissions), form.id)
    return SubmitResult(
        submission=submissions[0],
        submissions=submissions,
        files=files,
        submitter_name=submitter_name,
        submitter_email=submitter_email,
        answers=answers,
        meta=payload.metadata,
    )


async def run_post_commit(
    result: SubmitResult, session_factory: async_sessionmaker | None = None
) -> None:
    """Mirror an accepted submission into the form's spreadsheets. Failures are logged only."""
    session_factory = session_factory or async_session_factory
    submission = result.submission
    async with session_factory() as db:
        form = await form_svc.get_form(db, result.form_id)
        if not form:
            return

        if form.enable_response_sheet:
            try:
                await sheet_sync_svc.sync_files(
                    db,
                    form,
                    str(submission.id),
                    result.submitter_email,
                    result.files,
                    submitted_at=submission.created_at,
                )
            except Exception:
                log.warning("Response sheet sync failed for form %s", form.id, exc_info=True)

        if form.enable_metadata_spreadsheet:
            try:
                await metadata_sheet_svc.append_submission(
                    db,
                    form,
                    timestamp=submission.created_at or utcnow(),
                    submitter_name=result.submitter_name,
                    submitter_email=result.submitter_email,
                    files=result.files,
                    answers=result.answers,
                    meta=result.meta,
                )
            except Exception:
                log.warning("Metadata spreadsheet sync failed for form %s", form.id, exc_info=True)

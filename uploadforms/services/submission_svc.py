"""Submission service - one stored row per uploaded file."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.form import Form, Submission
from ..schemas.submission import SubmittedFile

log = logging.getLogger(__name__)

TRANSIENT_MARKERS = ("prepared statement", "connection", "server closed")


class PartialWriteError(Exception):
    """Sequential retry failed after ``stored`` rows were committed."""

    def __init__(self, original: Exception, stored: int):
        super().__init__(str(original))
        self.original = original
        self.stored = stored


def is_transient_error(exc: BaseException) -> bool:
    """Connection drops and prepared-statement clashes (pgbouncer) are retryable."""
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated or isinstance(exc, InterfaceError):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


def build_rows(
    form_id: uuid.UUID,
    files: list[SubmittedFile],
    *,
    group_id: uuid.UUID,
    answers: list[dict[str, Any]],
    submitter_name: str | None,
    submitter_email: str | None,
    meta: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    snapshot = [f.model_dump() for f in files]
    return [
        {
            "form_id": form_id,
            "submission_group_id": group_id,
            "file_url": f.url,
            "file_name": f.name,
            "file_type": f.type or "unknown",
            "file_size": f.size or 0,
            "files": snapshot,
            "answers": answers,
            "submitter_name": submitter_name,
            "submitter_email": submitter_email,
            "meta": meta or {},
        }
        for f in files
    ]


async def _create_sequentially(
    db: AsyncSession, rows: list[dict[str, Any]], original: Exception
) -> list[Submission]:
    created: list[Submission] = []
    for data in rows:
        sub = Submission(**data)
        db.add(sub)
        try:
            await db.commit()
        except DBAPIError:
            await db.rollback()
            raise PartialWriteError(original, stored=len(created))
        await db.refresh(sub)
        created.append(sub)
    return created


async def create_submissions(db: AsyncSession, rows: list[dict[str, Any]]) -> list[Submission]:
    """Store rows in order. A transient failure of the batch falls back to one commit per row."""
    subs = [Submission(**data) for data in rows]
    db.add_all(subs)
    try:
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        if not is_transient_error(exc):
            raise
        log.warning("Transient error storing %d submission rows, retrying sequentially: %s", len(rows), exc)
        return await _create_sequentially(db, rows, original=exc)

    for sub in subs:
        await db.refresh(sub)
    return subs


async def list_submissions(
    db: AsyncSession,
    form_id: uuid.UUID | None = None,
    owner_id: uuid.UUID | None = None,
) -> list[Submission]:
    stmt = select(Submission).options(selectinload(Submission.form))
    if owner_id is not None:
        stmt = stmt.join(Submission.form).where(Form.user_id == owner_id)
    if form_id is not None:
        stmt = stmt.where(Submission.form_id == form_id)
    stmt = stmt.order_by(Submission.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())

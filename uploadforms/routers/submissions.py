"""Admin submissions listing."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.submission import SubmissionResponse
from ..security.session import SessionUser, owner_scope, require_admin
from ..services import submission_svc

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.get("")
async def list_submissions(
    form_id: uuid.UUID | None = Query(None, alias="formId"),
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(require_admin),
):
    submissions = await submission_svc.list_submissions(db, form_id, owner_id=owner_scope(user))
    return [
        SubmissionResponse.from_submission(s, form_title=s.form.title if s.form else "Unknown")
        for s in submissions
    ]

"""Public submission endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.submission import SubmissionResponse, SubmitRequest
from ..security.rate_limit import submission_rate_limiter
from ..security.session import SessionUser, get_session_user
from ..services import submit_svc

log = logging.getLogger(__name__)

router = APIRouter(tags=["submit"])


@router.post("/api/submit")
async def submit_form(
    payload: SubmitRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_user: SessionUser | None = Depends(get_session_user),
):
    client_host = request.client.host if request.client else "unknown"
    decision = await submission_rate_limiter.hit(client_host)
    if not decision.allowed:
        log.warning("Submission rate limit hit for %s", client_host)
        return JSONResponse(
            {"error": "rate_limited", "detail": "Too many submissions. Please try again later."},
            status_code=429,
            headers={"Retry-After": str(decision.retry_after)},
        )

    result = await submit_svc.submit(db, payload, session_user)
    background_tasks.add_task(submit_svc.run_post_commit, result)
    return {
        "success": True,
        "submission": SubmissionResponse.from_submission(result.submission),
        "file_count": len(result.submissions),
    }

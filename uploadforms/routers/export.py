"""Export selected submissions to a new Google spreadsheet."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..google.client import GoogleAPIError, GoogleNotLinkedError
from ..schemas.submission import ExportRequest
from ..security.session import SessionUser, get_session_user
from ..services import export_svc, google_account_svc

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/export", tags=["export"])

RECONNECT_MESSAGE = "PERMISSION_ERROR: Please reconnect your Google account to export to Google Sheets."


@router.post("/google-sheet")
async def export_google_sheet(
    payload: ExportRequest,
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(get_session_user),
):
    if not user or not user.id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not payload.submissions:
        raise HTTPException(status_code=400, detail="No submissions provided")

    try:
        async with google_account_svc.google_client_for(db, user.id) as google:
            result = await export_svc.export_submissions(google, payload.submissions, payload.form_id)
    except GoogleNotLinkedError:
        return JSONResponse({"error": RECONNECT_MESSAGE}, status_code=403)
    except GoogleAPIError as exc:
        if exc.is_permission_error:
            return JSONResponse({"error": RECONNECT_MESSAGE}, status_code=403)
        log.error("Export to Google Sheets failed: %s", exc)
        return JSONResponse(
            {"error": "Failed to export to Google Sheet", "details": exc.message}, status_code=500
        )

    return {"success": True, **result}

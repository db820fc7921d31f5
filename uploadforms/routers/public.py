"""Public upload page."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..errors import AccessDenied, AuthenticationRequired, FormClosed, FormExpired, NotFound, SubmissionError
from ..security.session import SessionUser, get_session_user
from ..services import form_svc
from ..services.form_status import is_expired
from ..services.submit_svc import check_google_access, requires_google_sign_in

router = APIRouter(tags=["public"])
templates = Jinja2Templates(directory=str(settings.templates_dir))


def _unavailable(request: Request, exc: SubmissionError, form=None):
    return templates.TemplateResponse(
        request,
        "upload/unavailable.html",
        {"kind": exc.code, "message": exc.message, "form": form},
        status_code=exc.status_code,
    )


@router.get("/upload/{form_id}")
async def upload_page(
    request: Request,
    form_id: str,
    db: AsyncSession = Depends(get_db),
    session_user: SessionUser | None = Depends(get_session_user),
):
    try:
        form = await form_svc.get_form(db, uuid.UUID(form_id))
    except ValueError:
        form = None
    if not form or not form.is_published:
        return _unavailable(request, NotFound())

    if requires_google_sign_in(form):
        try:
            check_google_access(form, session_user)
        except AuthenticationRequired as exc:
            return templates.TemplateResponse(
                request,
                "upload/sign_in.html",
                {"form": form, "login_url": f"/auth/google/login?next=/upload/{form.id}"},
                status_code=exc.status_code,
            )
        except AccessDenied as exc:
            return _unavailable(request, exc, form)

    if not form.is_accepting_responses:
        return _unavailable(request, FormClosed(), form)
    if is_expired(form):
        return _unavailable(request, FormExpired(), form)

    return templates.TemplateResponse(request, "upload/form.html", {
        "form": form,
        "session_user": session_user,
        "ask_password": form.access_protection_type == "PASSWORD" and bool(form.password),
        "collect_email": form.email_field_control != "NOT_INCLUDED" and not requires_google_sign_in(form),
    })

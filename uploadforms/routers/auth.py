"""Google sign-in: authorization redirect, callback and logout."""

from __future__ import annotations

import hmac
import logging
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..google import oauth
from ..security.session import SessionUser, issue_session_token
from ..services import google_account_svc

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_COOKIE_MAX_AGE = 600


def _state_cookie_name() -> str:
    return f"{settings.auth_cookie_name}_oauth"


def _secure_cookies() -> bool:
    return settings.auth_cookie_secure or settings.is_production


def sanitize_next_path(raw_next: str | None, default: str = "/") -> str:
    next_path = (raw_next or "").strip()
    if not next_path or "\\" in next_path or "|" in next_path:
        return default
    parsed = urlsplit(next_path)
    if parsed.scheme or parsed.netloc:
        return default
    if not next_path.startswith("/") or next_path.startswith("//"):
        return default
    return next_path


@router.get("/google/login")
async def google_login(next: str = "/", login_hint: str | None = None):
    if not settings.google_configured:
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")

    state = oauth.generate_state()
    response = RedirectResponse(oauth.authorization_url(state, login_hint), status_code=303)
    response.set_cookie(
        key=_state_cookie_name(),
        value=f"{state}|{sanitize_next_path(next)}",
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=_secure_cookies(),
        samesite="lax",
        path="/",
    )
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    if error:
        raise HTTPException(status_code=400, detail=f"Google sign-in failed: {error}")

    stored_state, _, next_path = request.cookies.get(_state_cookie_name(), "").partition("|")
    if not code or not state or not stored_state or not hmac.compare_digest(stored_state, state):
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    try:
        tokens = await oauth.exchange_code(code)
        profile = await oauth.fetch_userinfo(tokens.access_token)
        user = await google_account_svc.upsert_google_user(db, profile, tokens)
    except oauth.OAuthError as exc:
        log.warning("Google sign-in failed: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    log.info("Signed in %s", user.email)
    token = issue_session_token(SessionUser(id=user.id, email=user.email, name=user.name))
    response = RedirectResponse(sanitize_next_path(next_path), status_code=303)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=max(60, settings.auth_session_ttl_seconds),
        httponly=True,
        secure=_secure_cookies(),
        samesite="lax",
        path="/",
    )
    response.delete_cookie(_state_cookie_name(), path="/")
    return response


@router.post("/logout")
async def logout(next: str = "/"):
    response = RedirectResponse(sanitize_next_path(next), status_code=303)
    response.delete_cookie(settings.auth_cookie_name, path="/")
    return response

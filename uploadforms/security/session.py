"""Signed session cookie issued after Google sign-in."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
import uuid
from dataclasses import dataclass

from fastapi import HTTPException, Request

from ..config import settings


@dataclass(frozen=True)
class SessionUser:
    id: uuid.UUID | None
    email: str
    name: str | None = None

    @property
    def domain(self) -> str:
        return self.email.rsplit("@", 1)[-1].lower() if "@" in self.email else ""


def _pack(payload: dict) -> str:
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _unpack(body: str) -> object:
    raw = base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
    return json.loads(raw)


def _ttl_seconds() -> int:
    return max(60, int(settings.auth_session_ttl_seconds))


def _sign(secret: str, body: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_session_token(user: SessionUser) -> str:
    secret = settings.auth_secret.strip()
    if not secret:
        raise RuntimeError("auth_secret is required to issue sessions")

    now = int(time.time())
    payload = {
        "sub": str(user.id) if user.id else None,
        "email": user.email,
        "name": user.name,
        "iat": now,
        "exp": now + _ttl_seconds(),
    }
    body = _pack(payload)
    return f"{body}.{_sign(secret, body)}"


def decode_session_token(token: str) -> SessionUser | None:
    secret = settings.auth_secret.strip()
    if not secret or not token:
        return None

    try:
        body, provided_sig = token.split(".", 1)
    except ValueError:
        return None

    if not hmac.compare_digest(provided_sig, _sign(secret, body)):
        return None

    try:
        payload = _unpack(body)
    except (ValueError, UnicodeDecodeError):
        return None

    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    email = payload.get("email")
    if not isinstance(exp, int) or exp <= int(time.time()):
        return None
    if not isinstance(email, str) or not email.strip():
        return None

    user_id = None
    sub = payload.get("sub")
    if isinstance(sub, str):
        try:
            user_id = uuid.UUID(sub)
        except ValueError:
            return None

    name = payload.get("name")
    return SessionUser(
        id=user_id,
        email=email.strip().lower(),
        name=name if isinstance(name, str) else None,
    )


def _extract_token(request: Request) -> str:
    cookie_token = request.cookies.get(settings.auth_cookie_name, "")
    if cookie_token:
        return cookie_token

    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return ""


def current_session_user(request: Request) -> SessionUser | None:
    return decode_session_token(_extract_token(request))


async def get_session_user(request: Request) -> SessionUser | None:
    """FastAPI dependency: the signed-in caller, if any."""
    return current_session_user(request)


async def require_admin(request: Request) -> SessionUser | None:
    """FastAPI dependency for admin routes; enforced only when auth is enabled."""
    user = current_session_user(request)
    # Admin sessions come from the Google callback and always carry a user id
    if settings.auth_enabled and (user is None or user.id is None):
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def owner_scope(user: SessionUser | None) -> uuid.UUID | None:
    """Owner id an admin listing is limited to, or None for every owner."""
    return user.id if user else None

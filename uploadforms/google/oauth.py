"""Google OAuth 2.0 endpoints: authorization URL, code exchange, refresh.

Handles the Authorization Code flow used by admins to link their Google
account (offline access so Drive/Sheets sync keeps working after the browser
session ends).
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from ..config import settings

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class OAuthError(Exception):
    """OAuth-related error."""

    def __init__(self, message: str, error_code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


@dataclass
class OAuthTokens:
    access_token: str
    expires_in: int
    refresh_token: str | None = None
    scope: str = ""
    id_token: str | None = None
    _created_at: int = field(default_factory=lambda: int(time.time()))

    @property
    def expires_at(self) -> int:
        return self._created_at + self.expires_in

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "OAuthTokens":
        return cls(
            access_token=data["access_token"],
            expires_in=int(data.get("expires_in", 3600)),
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope", ""),
            id_token=data.get("id_token"),
        )


def generate_state() -> str:
    return secrets.token_urlsafe(32)


def authorization_url(state: str, login_hint: str | None = None) -> str:
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": " ".join(settings.google_scope_list),
        "access_type": "offline",
        "prompt": "select_account consent",
        "state": state,
    }
    if login_hint:
        params["login_hint"] = login_hint
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def _token_request(data: dict[str, str]) -> OAuthTokens:
    async with httpx.AsyncClient(timeout=30.0) as client:
        resp = await client.post(GOOGLE_TOKEN_URL, data=data)

    if resp.is_error:
        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        raise OAuthError(
            payload.get("error_description") or f"Token request failed ({resp.status_code})",
            error_code=payload.get("error"),
            details=payload,
        )
    return OAuthTokens.from_response(resp.json())


async def exchange_code(code: str) -> OAuthTokens:
    """Exchange an authorization code for access + refresh tokens."""
    return await _token_request({
        "grant_type": "authorization_code",
        "code": code,
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
        "redirect_uri": settings.google_redirect_uri,
    })


async def refresh_access_token(refresh_token: str) -> OAuthTokens:
    """Get a fresh access token. Google usually omits a new refresh token."""
    return await _token_request({
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
    })


async def fetch_userinfo(access_token: str) -> dict[str, Any]:
    """Return the OpenID profile: {"sub", "email", "name", ...}."""
    async with httpx.AsyncClient(timeout=30.0) as client:
        resp = await client.get(
            GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )
    if resp.is_error:
        raise OAuthError(f"Userinfo request failed ({resp.status_code})")
    return resp.json()

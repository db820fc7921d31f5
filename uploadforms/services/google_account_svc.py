"""Linked Google accounts - token storage, refresh and client construction."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..google.client import GoogleClient, GoogleNotLinkedError
from ..google import oauth
from ..models.account import Account, User

log = logging.getLogger(__name__)

REFRESH_SKEW_SECONDS = 60


async def get_google_account(db: AsyncSession, user_id: uuid.UUID) -> Account | None:
    result = await db.execute(
        select(Account).where(Account.user_id == user_id, Account.provider == "google")
    )
    return result.scalars().first()


async def get_access_token(
    db: AsyncSession, user_id: uuid.UUID, now: int | None = None
) -> str:
    """Return a usable access token for ``user_id``, refreshing it if it is about to expire."""
    account = await get_google_account(db, user_id)
    if not account or not account.access_token:
        raise GoogleNotLinkedError(f"No Google account linked for user {user_id}")

    now = int(time.time()) if now is None else now
    if account.expires_at is not None and account.expires_at - REFRESH_SKEW_SECONDS <= now:
        if not account.refresh_token:
            raise GoogleNotLinkedError("Google access expired and no refresh token is stored")
        log.info("Refreshing Google access token for user %s", user_id)
        tokens = await oauth.refresh_access_token(account.refresh_token)
        account.access_token = tokens.access_token
        account.expires_at = tokens.expires_at
        if tokens.refresh_token:
            account.refresh_token = tokens.refresh_token
        if tokens.scope:
            account.scope = tokens.scope
        await db.commit()

    return account.access_token


@asynccontextmanager
async def google_client_for(db: AsyncSession, user_id: uuid.UUID) -> AsyncIterator[GoogleClient]:
    token = await get_access_token(db, user_id)
    async with GoogleClient(token) as google:
        yield google


async def upsert_google_user(
    db: AsyncSession, profile: dict[str, Any], tokens: oauth.OAuthTokens
) -> User:
    """Create or update the user and their Google account after sign-in."""
    email = str(profile.get("email") or "").strip().lower()
    if not email:
        raise oauth.OAuthError("Google profile has no email address")

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user:
        user = User(email=email, name=profile.get("name"))
        db.add(user)
        await db.flush()
    elif profile.get("name"):
        user.name = profile["name"]

    account = await get_google_account(db, user.id)
    if not account:
        account = Account(user_id=user.id, provider="google")
        db.add(account)
    account.provider_account_id = profile.get("sub")
    account.access_token = tokens.access_token
    account.expires_at = tokens.expires_at
    account.scope = tokens.scope or account.scope
    # Google only returns a refresh token on the first consent
    if tokens.refresh_token:
        account.refresh_token = tokens.refresh_token

    await db.commit()
    await db.refresh(user)
    return user

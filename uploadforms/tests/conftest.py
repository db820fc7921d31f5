"""Async test fixtures for upload forms tests using SQLite."""

from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from uploadforms.database import get_db
from uploadforms.models import Form, User
from uploadforms.models.base import Base
from uploadforms.security.rate_limit import submission_rate_limiter


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def owner(db: AsyncSession):
    user = User(id=uuid.uuid4(), email="owner@example.com", name="Form Owner")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def published_form(db: AsyncSession, owner: User):
    form = Form(
        user_id=owner.id,
        title="Resumes",
        is_published=True,
        is_accepting_responses=True,
        upload_fields=[{"id": "f-resume", "label": "Resume", "required": True}],
        custom_questions=[],
    )
    db.add(form)
    await db.commit()
    await db.refresh(form)
    return form


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    submission_rate_limiter.reset()
    yield
    submission_rate_limiter.reset()


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTPX async test client against the upload forms app."""
    from uploadforms.app import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()

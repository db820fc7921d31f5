"""Form service - CRUD for form configurations."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.form import Form
from ..security.passwords import hash_password

READONLY_KEYS = {"id", "created_at", "updated_at", "status", "submissions", "has_password", "user_id"}
JSON_LIST_KEYS = ("upload_fields", "custom_questions", "allowed_domains", "allowed_emails")


def _prepare(fields: dict[str, Any]) -> dict[str, Any]:
    data = {k: v for k, v in fields.items() if k not in READONLY_KEYS}
    for key in JSON_LIST_KEYS:
        if key in data and data[key] is None:
            data[key] = []
    if "password" in data:
        data["password"] = hash_password(data["password"]) if data["password"] else None
    return data


async def list_forms(db: AsyncSession, user_id: uuid.UUID | None = None) -> list[Form]:
    stmt = select(Form).order_by(Form.created_at.desc())
    if user_id is not None:
        stmt = stmt.where(Form.user_id == user_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_form(db: AsyncSession, form_id: uuid.UUID) -> Form | None:
    result = await db.execute(select(Form).where(Form.id == form_id))
    return result.scalar_one_or_none()


async def create_form(
    db: AsyncSession, user_id: uuid.UUID | None = None, **kwargs
) -> Form:
    data = _prepare(kwargs)
    data["title"] = data.get("title") or "Untitled Form"
    data.setdefault("description", "")
    form = Form(user_id=user_id, **data)
    db.add(form)
    await db.commit()
    await db.refresh(form)
    return form


async def update_form(
    db: AsyncSession, form_id: uuid.UUID, **kwargs
) -> Form | None:
    form = await get_form(db, form_id)
    if not form:
        return None
    for k, v in _prepare(kwargs).items():
        setattr(form, k, v)
    await db.commit()
    await db.refresh(form)
    return form


async def delete_form(db: AsyncSession, form_id: uuid.UUID) -> bool:
    form = await get_form(db, form_id)
    if not form:
        return False
    await db.delete(form)
    await db.commit()
    return True


async def publish_form(db: AsyncSession, form_id: uuid.UUID) -> Form | None:
    return await update_form(db, form_id, is_published=True, is_accepting_responses=True)


async def set_response_sheet_id(
    db: AsyncSession, form_id: uuid.UUID, sheet_id: str | None
) -> None:
    form = await get_form(db, form_id)
    if form:
        form.response_sheet_id = sheet_id
        await db.commit()

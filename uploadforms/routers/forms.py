"""Form builder API - CRUD and publish."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..schemas.form import FormCreate, FormResponse, FormUpdate
from ..security.session import SessionUser, owner_scope, require_admin
from ..services import form_svc
from ..services.publish_rules import validate_for_publish

router = APIRouter(prefix="/api/forms", tags=["forms"])


def can_manage(form, user: SessionUser | None) -> bool:
    if not settings.auth_enabled:
        return True
    return user is not None and form.user_id == user.id


async def _get_or_404(db: AsyncSession, form_id: uuid.UUID, user: SessionUser | None):
    form = await form_svc.get_form(db, form_id)
    # Other owners' forms look the same as missing ones
    if not form or not can_manage(form, user):
        raise HTTPException(status_code=404, detail="Form not found")
    return form


@router.get("")
async def list_forms(
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(require_admin),
):
    forms = await form_svc.list_forms(db, owner_scope(user))
    return [FormResponse.from_form(f) for f in forms]


@router.post("", status_code=201)
async def create_form(
    payload: FormCreate | None = None,
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(require_admin),
):
    data = payload.model_dump(exclude_none=True) if payload else {}
    form = await form_svc.create_form(db, user.id if user else None, **data)
    return FormResponse.from_form(form)


@router.get("/{form_id}")
async def get_form(
    form_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(require_admin),
):
    return FormResponse.from_form(await _get_or_404(db, form_id, user))


@router.put("/{form_id}")
async def update_form(
    form_id: uuid.UUID,
    payload: FormUpdate,
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(require_admin),
):
    await _get_or_404(db, form_id, user)
    form = await form_svc.update_form(db, form_id, **payload.model_dump(exclude_unset=True))
    return FormResponse.from_form(form)


@router.delete("/{form_id}")
async def delete_form(
    form_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(require_admin),
):
    await _get_or_404(db, form_id, user)
    await form_svc.delete_form(db, form_id)
    return {"deleted": True, "id": str(form_id)}


@router.post("/{form_id}/publish")
async def publish_form(
    form_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: SessionUser | None = Depends(require_admin),
):
    form = await _get_or_404(db, form_id, user)
    errors = validate_for_publish(form)
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})
    form = await form_svc.publish_form(db, form_id)
    return FormResponse.from_form(form)

"""Derived form status. Expiry is always computed, never stored."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from datetime import datetime, timezone


class FormStatus(str, enum.Enum):
    PUBLISHED = "Published"
    DRAFT = "Draft"
    EXPIRED = "Expired"


def _field(form, name: str):
    if isinstance(form, Mapping):
        return form.get(name)
    return getattr(form, name, None)


def to_utc(value: datetime | str | None) -> datetime | None:
    """Coerce a stored or serialized timestamp to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_expired(form, now: datetime | None = None) -> bool:
    expiry = to_utc(_field(form, "expiry_date"))
    if expiry is None:
        return False
    current = to_utc(now) if now is not None else utcnow()
    return current > expiry


def classify(form, now: datetime | None = None) -> FormStatus:
    """Bucket a form (ORM object or serialized dict) into exactly one status."""
    if is_expired(form, now):
        return FormStatus.EXPIRED
    if _field(form, "is_published"):
        return FormStatus.PUBLISHED
    return FormStatus.DRAFT

"""Form and Submission models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin

ACCESS_LEVELS = ("ANYONE", "INVITED")
ACCESS_PROTECTION_TYPES = ("PUBLIC", "PASSWORD", "GOOGLE")
EMAIL_FIELD_CONTROLS = ("REQUIRED", "OPTIONAL", "NOT_INCLUDED")


class Form(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "form"

    user_id: Mapped["uuid.UUID | None"] = mapped_column(
        Uuid, ForeignKey("user.id", ondelete="SET NULL"), default=None, index=True
    )
    title: Mapped[str] = mapped_column(String(300), default="Untitled Form")
    description: Mapped[str | None] = mapped_column(Text, default="")

    # Access control
    access_level: Mapped[str] = mapped_column(String(20), default="ANYONE")
    access_protection_type: Mapped[str] = mapped_column(String(20), default="PUBLIC")
    # PBKDF2 hash, never the plaintext
    password: Mapped[str | None] = mapped_column(String(255), default=None)
    allowed_domains: Mapped[list | None] = mapped_column(JSON, default=list)
    allowed_emails: Mapped[list | None] = mapped_column(JSON, default=list)
    email_field_control: Mapped[str] = mapped_column(String(20), default="OPTIONAL")

    # Lifecycle
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    is_accepting_responses: Mapped[bool] = mapped_column(Boolean, default=True)
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Structure
    upload_fields: Mapped[list | None] = mapped_column(JSON, default=list)
    custom_questions: Mapped[list | None] = mapped_column(JSON, default=list)

    # Drive / Sheets linkage
    drive_folder_id: Mapped[str | None] = mapped_column(String(200), default=None)
    drive_type: Mapped[str | None] = mapped_column(String(20), default=None)
    enable_response_sheet: Mapped[bool] = mapped_column(Boolean, default=False)
    response_sheet_id: Mapped[str | None] = mapped_column(String(200), default=None)
    enable_metadata_spreadsheet: Mapped[bool] = mapped_column(Boolean, default=False)

    # Branding
    logo_url: Mapped[str | None] = mapped_column(Text, default=None)
    primary_color: Mapped[str | None] = mapped_column(String(20), default="#4f46e5")
    background_color: Mapped[str | None] = mapped_column(String(20), default="#ffffff")
    font_family: Mapped[str | None] = mapped_column(String(100), default="Inter")

    submissions: Mapped[list["Submission"]] = relationship(
        back_populates="form", cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Form {self.title!r}>"


class Submission(UUIDMixin, CreatedAtMixin, Base):
    """One uploaded file plus the answers/identity of its submission event."""

    __tablename__ = "submission"

    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("form.id", ondelete="CASCADE"), index=True
    )
    submission_group_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    file_url: Mapped[str] = mapped_column(Text)
    file_name: Mapped[str] = mapped_column(String(500))
    file_type: Mapped[str] = mapped_column(String(200), default="unknown")
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    files: Mapped[list | None] = mapped_column(JSON, default=list)
    answers: Mapped[list | None] = mapped_column(JSON, default=list)
    submitter_name: Mapped[str | None] = mapped_column(String(200), default=None)
    submitter_email: Mapped[str | None] = mapped_column(String(255), default=None)
    meta: Mapped[dict | None] = mapped_column(JSON, default=dict)
    form: Mapped["Form"] = relationship(back_populates="submissions")

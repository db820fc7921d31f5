"""Pydantic models for the form builder API."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..services.form_status import classify

CHOICE_QUESTION_TYPES = {"select", "checkbox", "radio"}
QUESTION_TYPES = {"text", "textarea", "email", "number", "date"} | CHOICE_QUESTION_TYPES


class _CamelModel(BaseModel):
    """Accepts both snake_case and camelCase keys, dumps snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadField(_CamelModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    label: str = ""
    allowed_types: str = "any"
    required: bool = True
    allow_multiple: bool = True
    allow_folder: bool = False
    max_file_size: int | None = None


class CustomQuestion(_CamelModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str = "text"
    label: str = ""
    required: bool = False
    options: list[str] = Field(default_factory=list)
    allow_other: bool = False
    placeholder: str | None = None


class FormCreate(_CamelModel):
    title: str | None = None
    description: str | None = None


class FormUpdate(_CamelModel):
    title: str | None = None
    description: str | None = None
    access_level: str | None = None
    access_protection_type: str | None = None
    password: str | None = None
    allowed_domains: list[str] | None = None
    allowed_emails: list[str] | None = None
    email_field_control: str | None = None
    is_published: bool | None = None
    is_accepting_responses: bool | None = None
    expiry_date: datetime | None = None
    upload_fields: list[UploadField] | None = None
    custom_questions: list[CustomQuestion] | None = None
    drive_folder_id: str | None = None
    drive_type: str | None = None
    enable_response_sheet: bool | None = None
    enable_metadata_spreadsheet: bool | None = None
    logo_url: str | None = None
    primary_color: str | None = None
    background_color: str | None = None
    font_family: str | None = None


class FormResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID | None = None
    title: str
    description: str | None = None
    access_level: str
    access_protection_type: str
    has_password: bool = False
    allowed_domains: list[str] | None = None
    allowed_emails: list[str] | None = None
    email_field_control: str
    is_published: bool
    is_accepting_responses: bool
    expiry_date: datetime | None = None
    upload_fields: list[dict] | None = None
    custom_questions: list[dict] | None = None
    drive_folder_id: str | None = None
    drive_type: str | None = None
    enable_response_sheet: bool
    response_sheet_id: str | None = None
    enable_metadata_spreadsheet: bool
    logo_url: str | None = None
    primary_color: str | None = None
    background_color: str | None = None
    font_family: str | None = None
    status: str = "Draft"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_form(cls, form, now: datetime | None = None) -> "FormResponse":
        data = cls.model_validate(form)
        return data.model_copy(update={
            "has_password": bool(form.password),
            "status": classify(form, now).value,
        })

"""Pydantic models for the public submission endpoint."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SubmittedFile(BaseModel):
    """One canonical file entry after normalization."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    name: str
    type: str = "unknown"
    size: int = 0
    field_id: str | None = None
    label: str | None = None
    is_from_folder: bool = False
    folder_name: str | None = None
    relative_path: str | None = None


class Answer(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question_id: str
    answer: Any = None


class SubmitRequest(BaseModel):
    """Body of ``POST /api/submit``.

    ``files`` entries are kept loose here; the pipeline normalizes them so it
    can name the offending entry when one is malformed.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    form_id: str | None = None
    files: list[Any] | None = None
    # Legacy single-file fields
    file_url: str | None = None
    file_name: str | None = None
    file_type: str | None = None
    file_size: int | None = None

    answers: list[Answer] = Field(default_factory=list)
    submitter_name: str | None = None
    submitter_email: str | None = None
    password: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ExportRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    form_id: str | None = None
    submissions: list[dict[str, Any]] = Field(default_factory=list)


class SubmissionResponse(BaseModel):
    id: uuid.UUID
    form_id: uuid.UUID
    form_title: str | None = None
    submission_group_id: uuid.UUID
    file_url: str
    file_name: str
    file_type: str
    file_size: int
    files: list[dict] | None = None
    answers: list[dict] | None = None
    submitter_name: str | None = None
    submitter_email: str | None = None
    meta: dict | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_submission(cls, submission, form_title: str | None = None) -> "SubmissionResponse":
        data = cls.model_validate(submission)
        if form_title is not None:
            data = data.model_copy(update={"form_title": form_title})
        return data

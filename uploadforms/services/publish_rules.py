"""Checks a form must pass before it can be published."""

from __future__ import annotations

from collections.abc import Mapping

from ..schemas.form import CHOICE_QUESTION_TYPES


def _field(form, name: str):
    if isinstance(form, Mapping):
        return form.get(name)
    return getattr(form, name, None)


def _text(value) -> str:
    return str(value or "").strip()


def check_title(form) -> list[str]:
    if not _text(_field(form, "title")):
        return ["Form title is required"]
    return []


def check_upload_fields(form) -> list[str]:
    fields = _field(form, "upload_fields") or []
    if not any(_text(f.get("label")) for f in fields if isinstance(f, Mapping)):
        return ["At least one file upload field with a label is required"]
    return []


def check_required_questions(form) -> list[str]:
    errors: list[str] = []
    questions = _field(form, "custom_questions") or []
    for index, question in enumerate(questions, start=1):
        if not isinstance(question, Mapping) or not question.get("required"):
            continue
        label = _text(question.get("label"))
        if not label:
            errors.append(f"Question {index} is required but has no label")
        if question.get("type") in CHOICE_QUESTION_TYPES:
            options = [o for o in (question.get("options") or []) if _text(o)]
            if not options:
                name = f'"{label}"' if label else str(index)
                errors.append(f"Question {name} needs at least one option")
    return errors


VALIDATORS = (check_title, check_upload_fields, check_required_questions)


def validate_for_publish(form) -> list[str]:
    """Run every validator and collect all messages (no short-circuit)."""
    errors: list[str] = []
    for validator in VALIDATORS:
        errors.extend(validator(form))
    return errors

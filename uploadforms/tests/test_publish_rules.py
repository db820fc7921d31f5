"""Tests for publish validation."""

from __future__ import annotations

from uploadforms.services.publish_rules import validate_for_publish


def _form(**overrides):
    form = {
        "title": "Applications",
        "upload_fields": [{"id": "f1", "label": "Resume"}],
        "custom_questions": [],
    }
    form.update(overrides)
    return form


def test_valid_form_passes():
    assert validate_for_publish(_form()) == []


def test_missing_upload_fields():
    errors = validate_for_publish(_form(upload_fields=[]))
    assert any("At least one file upload field" in e for e in errors)


def test_adding_labeled_field_fixes_publish():
    form = _form(upload_fields=[])
    assert validate_for_publish(form)
    form["upload_fields"] = [{"id": "f1", "label": "Resume"}]
    assert validate_for_publish(form) == []


def test_unlabeled_upload_field_does_not_count():
    errors = validate_for_publish(_form(upload_fields=[{"id": "f1", "label": "  "}]))
    assert errors == ["At least one file upload field with a label is required"]


def test_collects_every_error():
    form = _form(
        title=" ",
        upload_fields=[],
        custom_questions=[
            {"id": "q1", "type": "text", "label": "", "required": True},
            {"id": "q2", "type": "select", "label": "Team", "required": True, "options": ["", " "]},
        ],
    )
    errors = validate_for_publish(form)
    assert errors == [
        "Form title is required",
        "At least one file upload field with a label is required",
        "Question 1 is required but has no label",
        'Question "Team" needs at least one option',
    ]


def test_optional_questions_are_not_checked():
    form = _form(custom_questions=[{"id": "q1", "type": "radio", "label": "", "required": False}])
    assert validate_for_publish(form) == []


def test_choice_question_with_option_passes():
    form = _form(custom_questions=[
        {"id": "q1", "type": "checkbox", "label": "Roles", "required": True, "options": ["Dev"]},
    ])
    assert validate_for_publish(form) == []

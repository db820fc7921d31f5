"""Form editor state: one draft in memory, debounced auto-save."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from ..config import settings
from ..services.form_status import to_utc
from ..services.publish_rules import validate_for_publish
from .api import AdminAPI, AdminAPIError

log = logging.getLogger(__name__)

NEW_FORM_ID = "new"
PLACEHOLDER_TITLE = "Untitled Form"
LOCAL_DATETIME_FORMAT = "%Y-%m-%dT%H:%M"
JSON_FIELDS = ("upload_fields", "custom_questions", "allowed_domains", "allowed_emails")
# Server-computed or server-owned keys never sent back on save
SERVER_KEYS = {
    "id", "user_id", "created_at", "updated_at", "status", "has_password", "response_sheet_id",
}


def new_upload_field() -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "label": "",
        "allowed_types": "any",
        "required": True,
        "allow_multiple": True,
        "allow_folder": False,
        "max_file_size": None,
    }


def new_question() -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "type": "text",
        "label": "",
        "required": False,
        "options": [],
        "allow_other": False,
        "placeholder": None,
    }


def default_config() -> dict[str, Any]:
    return {
        "title": "",
        "description": "",
        "access_level": "ANYONE",
        "access_protection_type": "PUBLIC",
        "allowed_domains": [],
        "allowed_emails": [],
        "email_field_control": "OPTIONAL",
        "is_published": False,
        "is_accepting_responses": True,
        "expiry_date": "",
        "upload_fields": [new_upload_field()],
        "custom_questions": [new_question()],
        "enable_response_sheet": False,
        "enable_metadata_spreadsheet": False,
    }


def _is_email_question(question: dict[str, Any]) -> bool:
    return str(question.get("label") or "").strip().lower() == "email"


def _is_blank(question: dict[str, Any]) -> bool:
    return not str(question.get("label") or "").strip()


def reconcile_email_question(prev: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    """Keep the "Email" question consistent with the access mode and email setting.

    Switching to GOOGLE drops the Email question (a blank one takes its place
    when it was first) and turns email collection off. Turning collection on
    under other modes adds an Email question, or only updates its required
    flag when one already exists.
    """
    result = dict(new)
    questions = [dict(q) for q in (new.get("custom_questions") or [])]
    result["custom_questions"] = questions

    if result.get("access_protection_type") == "GOOGLE":
        if prev.get("access_protection_type") != "GOOGLE":
            index = next((i for i, q in enumerate(questions) if _is_email_question(q)), None)
            if index == 0:
                questions[0] = new_question()
            elif index is not None:
                del questions[index]
        result["email_field_control"] = "NOT_INCLUDED"
        return result

    control = result.get("email_field_control")
    changed = (
        control != prev.get("email_field_control")
        or prev.get("access_protection_type") == "GOOGLE"
    )
    if control not in ("REQUIRED", "OPTIONAL") or not changed:
        return result

    required = control == "REQUIRED"
    index = next((i for i, q in enumerate(questions) if _is_email_question(q)), None)
    if index is not None:
        questions[index]["required"] = required
        return result

    email = {**new_question(), "type": "email", "label": "Email", "required": required}
    if not questions:
        questions.append(email)
    elif _is_blank(questions[0]):
        questions[0] = email
    else:
        questions.insert(1, email)
    return result


def _decode_json_field(value: Any) -> list:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    return list(value) if isinstance(value, list) else []


def to_local_input(value: Any, tz: str | None = None) -> str:
    """Stored expiry -> 'YYYY-MM-DDTHH:MM' in the editor's timezone."""
    if not value:
        return ""
    try:
        moment = to_utc(value)
    except ValueError:
        return ""
    return moment.astimezone(ZoneInfo(tz or settings.editor_timezone)).strftime(LOCAL_DATETIME_FORMAT)


def from_local_input(value: Any, tz: str | None = None) -> str | None:
    """'YYYY-MM-DDTHH:MM' in the editor's timezone -> UTC ISO timestamp."""
    if not value:
        return None
    local = datetime.strptime(str(value)[:16], LOCAL_DATETIME_FORMAT)
    aware = local.replace(tzinfo=ZoneInfo(tz or settings.editor_timezone))
    return aware.astimezone(timezone.utc).isoformat()


def deserialize_form(data: dict[str, Any], tz: str | None = None) -> dict[str, Any]:
    config = dict(data)
    for key in JSON_FIELDS:
        config[key] = _decode_json_field(config.get(key))
    if config.get("title") == PLACEHOLDER_TITLE:
        config["title"] = ""
    config["expiry_date"] = to_local_input(config.get("expiry_date"), tz)
    return config


def serialize_config(config: dict[str, Any], tz: str | None = None) -> dict[str, Any]:
    payload = {k: v for k, v in config.items() if k not in SERVER_KEYS}
    payload["expiry_date"] = from_local_input(config.get("expiry_date"), tz)
    return payload


class EditorController:
    def __init__(
        self,
        api: AdminAPI,
        form_id: str = NEW_FORM_ID,
        delay: float | None = None,
        tz: str | None = None,
    ):
        self.api = api
        self.form_id = form_id
        self.delay = settings.autosave_delay_seconds if delay is None else delay
        self.tz = tz
        self.config: dict[str, Any] = {}
        self.last_error: str | None = None
        self.save_count = 0
        self._pending: asyncio.Task | None = None
        self._running: asyncio.Task | None = None
        self._save_lock = asyncio.Lock()

    @property
    def is_new(self) -> bool:
        return self.form_id == NEW_FORM_ID

    async def load(self) -> dict[str, Any]:
        if self.is_new:
            self.config = default_config()
        else:
            self.config = deserialize_form(await self.api.get_form(self.form_id), self.tz)
        return self.config

    def update(self, **changes: Any) -> dict[str, Any]:
        """Apply a change, reconcile derived fields and schedule an auto-save."""
        previous = self.config
        self.config = reconcile_email_question(previous, {**previous, **changes})
        self.schedule_save()
        return self.config

    def schedule_save(self) -> None:
        self._cancel_pending()
        self._pending = asyncio.create_task(self._save_later())

    def _cancel_pending(self) -> bool:
        """Cancel a save still waiting out its delay. Saves already running are left alone."""
        pending, self._pending = self._pending, None
        if pending and not pending.done():
            pending.cancel()
            return True
        return False

    @property
    def has_pending_save(self) -> bool:
        return any(t is not None and not t.done() for t in (self._pending, self._running))

    async def _save_later(self) -> None:
        await asyncio.sleep(self.delay)
        task = asyncio.current_task()
        # Past the delay: later edits schedule a new save instead of cancelling this one
        if self._pending is task:
            self._pending = None
        self._running = task
        try:
            await self.persist()
        except AdminAPIError as exc:
            self.last_error = str(exc)
            log.warning("Auto-save failed for form %s: %s", self.form_id, exc)
        except Exception as exc:
            self.last_error = str(exc) or exc.__class__.__name__
            log.warning("Auto-save failed for form %s", self.form_id, exc_info=True)
        finally:
            if self._running is task:
                self._running = None

    async def persist(self) -> dict[str, Any]:
        async with self._save_lock:
            if self.is_new:
                created = await self.api.create_form(
                    title=self.config.get("title") or None,
                    description=self.config.get("description"),
                )
                self.form_id = str(created["id"])
            saved = await self.api.update_form(self.form_id, serialize_config(self.config, self.tz))
            self.save_count += 1
            self.last_error = None
            return saved

    async def flush(self) -> None:
        """Run a pending auto-save now and wait for one already in flight."""
        if self._cancel_pending():
            await self.persist()
        elif self._running is not None:
            await asyncio.wait([self._running])

    async def save_draft(self) -> dict[str, Any]:
        self._cancel_pending()
        return await self.persist()

    async def publish(self) -> list[str]:
        """Save, validate and publish. Returns the validation messages (empty on success)."""
        errors = validate_for_publish(self.config)
        if errors:
            return errors
        await self.save_draft()
        await self.api.publish_form(self.form_id)
        self.config["is_published"] = True
        self.config["is_accepting_responses"] = True
        return []

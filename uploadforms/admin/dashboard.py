"""Admin dashboard state: the form list and its optimistic actions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ..services.form_status import FormStatus, classify, is_expired, to_utc, utcnow
from ..services.publish_rules import validate_for_publish
from .api import AdminAPI, AdminAPIError
from .optimistic import OptimisticUpdate

log = logging.getLogger(__name__)

PUBLISH_FIRST_MESSAGE = "Form must be published before it can accept responses"
EXPIRED_MESSAGE = "This form has expired. Update the expiry date before accepting responses again"
TOGGLE_FAILED_MESSAGE = "Failed to update form status. Please try again."
DELETE_FAILED_MESSAGE = "Failed to delete form. Please try again."
PUBLISH_FAILED_MESSAGE = "Failed to publish form. Please try again."

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_key(form: dict[str, Any]) -> datetime:
    try:
        return to_utc(form.get("created_at")) or _EPOCH
    except ValueError:
        return _EPOCH


class DashboardController:
    """Holds the admin's forms in memory.

    Toggle and delete change local state first and roll back when the server
    call fails. ``error`` holds the message the dashboard shows in its modal.
    """

    def __init__(self, api: AdminAPI, now: Callable[[], datetime] = utcnow):
        self.api = api
        self._now = now
        self.forms: list[dict[str, Any]] = []
        self.error: str | None = None
        self.validation_errors: list[str] = []
        self.pending_delete_id: str | None = None

    async def load(self) -> list[dict[str, Any]]:
        self.forms = await self.api.list_forms()
        return self.forms

    def find(self, form_id: str) -> dict[str, Any] | None:
        return next((f for f in self.forms if str(f.get("id")) == str(form_id)), None)

    def status_of(self, form: dict[str, Any]) -> FormStatus:
        return classify(form, self._now())

    def buckets(self) -> dict[FormStatus, list[dict[str, Any]]]:
        grouped: dict[FormStatus, list[dict[str, Any]]] = {s: [] for s in FormStatus}
        for form in self.forms:
            grouped[self.status_of(form)].append(form)
        return grouped

    def dismiss_error(self) -> None:
        self.error = None
        self.validation_errors = []

    def request_delete(self, form_id: str) -> None:
        self.pending_delete_id = form_id

    def cancel_delete(self) -> None:
        self.pending_delete_id = None

    async def toggle_accepting(self, form_id: str) -> bool:
        form = self.find(form_id)
        if form is None:
            return False
        if not form.get("is_published"):
            self.error = PUBLISH_FIRST_MESSAGE
            return False

        previous = bool(form.get("is_accepting_responses"))
        target = not previous
        if target and is_expired(form, self._now()):
            self.error = EXPIRED_MESSAGE
            return False

        update = OptimisticUpdate(
            apply=lambda: form.__setitem__("is_accepting_responses", target),
            revert=lambda: form.__setitem__("is_accepting_responses", previous),
            remote=lambda: self.api.update_form(form_id, {"is_accepting_responses": target}),
        )
        try:
            await update.run()
        except AdminAPIError as exc:
            log.warning("Toggle accepting responses failed for %s: %s", form_id, exc)
            self.error = TOGGLE_FAILED_MESSAGE
            return False

        await self.load()
        return True

    def _remove(self, form_id: str) -> None:
        self.forms = [f for f in self.forms if str(f.get("id")) != str(form_id)]
        self.pending_delete_id = None

    def _reinsert(self, form: dict[str, Any]) -> None:
        self.forms = sorted([*self.forms, form], key=_created_key, reverse=True)

    async def delete(self, form_id: str) -> bool:
        form = self.find(form_id)
        if form is None:
            return False

        update = OptimisticUpdate(
            apply=lambda: self._remove(form_id),
            revert=lambda: self._reinsert(form),
            remote=lambda: self.api.delete_form(form_id),
        )
        try:
            await update.run()
        except AdminAPIError as exc:
            log.warning("Delete failed for %s: %s", form_id, exc)
            self.error = DELETE_FAILED_MESSAGE
            return False
        return True

    async def publish(self, form_id: str) -> bool:
        """Validate the fresh record and publish it, reporting every problem at once."""
        self.validation_errors = []
        try:
            fresh = await self.api.get_form(form_id)
        except AdminAPIError as exc:
            log.warning("Could not load form %s for publishing: %s", form_id, exc)
            self.error = PUBLISH_FAILED_MESSAGE
            return False

        errors = validate_for_publish(fresh)
        if errors:
            self.validation_errors = errors
            self.error = "\n".join(errors)
            return False

        try:
            await self.api.publish_form(form_id)
        except AdminAPIError as exc:
            log.warning("Publish failed for %s: %s", form_id, exc)
            if exc.status_code == 422 and isinstance(exc.detail, dict):
                self.validation_errors = list(exc.detail.get("errors") or [])
            self.error = "\n".join(self.validation_errors) or PUBLISH_FAILED_MESSAGE
            return False

        await self.load()
        return True

"""Live response sheet - one row per uploaded file, appended after each submission.

The sheet is created lazily the first time a submission arrives for a form
with the response sheet enabled. If the stored sheet has since been deleted or
become inaccessible, a new one is created and its id replaces the old one.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..google.client import GoogleAPIError, GoogleNotLinkedError
from ..google.sheets import SheetsAPI
from ..models.form import Form
from ..schemas.submission import SubmittedFile
from . import form_svc, google_account_svc
from .form_status import to_utc, utcnow

log = logging.getLogger(__name__)

HEADERS = [
    "Submission ID",
    "Uploaded At",
    "Upload Type",
    "Folder Name",
    "Relative Path",
    "File Name",
    "File Size",
    "File URL",
    "Field Name",
    "Uploader Email",
]
HEADER_BACKGROUND = {"red": 0.2, "green": 0.6, "blue": 0.4}
WHITE = {"red": 1.0, "green": 1.0, "blue": 1.0}

_RANGE_RE = re.compile(r"!\$?([A-Z]+)\$?(\d+)(?::\$?([A-Z]+)\$?(\d+))?$")


class SheetsPermissionError(GoogleAPIError):
    """The linked Google account no longer grants access to Sheets."""

    def __init__(self, message: str = "Please reconnect your Google account to continue using response sheets."):
        super().__init__(message, status_code=403, reason="PERMISSION_DENIED")


def format_size(size: int | None) -> str:
    size = int(size or 0)
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def format_timestamp(value: datetime, tz: str | None = None) -> str:
    """DD/MM/YYYY HH:MM:SS in the configured sheet timezone."""
    local = to_utc(value).astimezone(ZoneInfo(tz or settings.sheets_timezone))
    return local.strftime("%d/%m/%Y %H:%M:%S")


def field_labels(upload_fields: Iterable[dict[str, Any]] | None) -> dict[str, str]:
    return {
        str(f.get("id")): f.get("label")
        for f in upload_fields or []
        if isinstance(f, dict) and f.get("id") and f.get("label")
    }


def build_row(
    submission_id: str,
    uploaded_at: str,
    file: SubmittedFile,
    submitter_email: str | None,
    labels: dict[str, str] | None = None,
) -> list[Any]:
    labels = labels or {}
    label = file.label or labels.get(file.field_id or "") or "Unknown"
    return [
        submission_id,
        uploaded_at,
        "folder" if file.is_from_folder else "file",
        file.folder_name or "",
        file.relative_path or file.name,
        file.name,
        format_size(file.size),
        file.url,
        label,
        submitter_email or "Anonymous",
    ]


def parse_row_span(updated_range: str | None) -> tuple[int, int] | None:
    """'Sheet1!A5:J7' -> (4, 7) as zero-based start / exclusive end row indexes."""
    if not updated_range:
        return None
    match = _RANGE_RE.search(updated_range)
    if not match:
        return None
    start = int(match.group(2)) - 1
    end = int(match.group(4) or match.group(2))
    if start < 1 or end <= start:
        return None
    return start, end


def _header_requests(sheet_id: int) -> list[dict[str, Any]]:
    return [
        {
            "repeatCell": {
                "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                "cell": {
                    "userEnteredFormat": {
                        "backgroundColor": HEADER_BACKGROUND,
                        "textFormat": {"bold": True, "foregroundColor": WHITE},
                    }
                },
                "fields": "userEnteredFormat(backgroundColor,textFormat)",
            }
        },
        {
            "updateSheetProperties": {
                "properties": {"sheetId": sheet_id, "gridProperties": {"frozenRowCount": 1}},
                "fields": "gridProperties.frozenRowCount",
            }
        },
    ]


def _first_sheet(meta: dict[str, Any]) -> tuple[int, str]:
    sheets = meta.get("sheets") or [{}]
    props = sheets[0].get("properties") or {}
    return int(props.get("sheetId", 0)), props.get("title") or "Sheet1"


async def create_sheet(sheets: SheetsAPI, form_title: str) -> str:
    created = await sheets.create_spreadsheet(f"{form_title} - Uploads")
    spreadsheet_id = created["spreadsheetId"]
    sheet_id, sheet_title = _first_sheet(created)
    await sheets.write_range(spreadsheet_id, f"{sheet_title}!A1:J1", [HEADERS])
    await sheets.batch_update(spreadsheet_id, _header_requests(sheet_id))
    log.info("Created response sheet %s for %r", spreadsheet_id, form_title)
    return spreadsheet_id


async def ensure_sheet(
    db: AsyncSession, sheets: SheetsAPI, form_id: uuid.UUID, form_title: str
) -> str:
    """Return the form's response sheet id, creating (and storing) one when missing or unusable."""
    form = await form_svc.get_form(db, form_id)
    existing = form.response_sheet_id if form else None
    if existing:
        try:
            await sheets.get_metadata(existing)
            return existing
        except GoogleAPIError as exc:
            log.warning("Response sheet %s is unusable, creating a new one: %s", existing, exc)

    spreadsheet_id = await create_sheet(sheets, form_title)
    await form_svc.set_response_sheet_id(db, form_id, spreadsheet_id)
    return spreadsheet_id


async def append_file_rows(
    sheets: SheetsAPI,
    spreadsheet_id: str,
    submission_id: str,
    submitter_email: str | None,
    files: list[SubmittedFile],
    *,
    submitted_at: datetime | None = None,
    upload_fields: list[dict[str, Any]] | None = None,
) -> int:
    """Append one row per file in a single call, then reset the new rows to a plain background."""
    if not files:
        return 0

    uploaded_at = format_timestamp(submitted_at or utcnow())
    labels = field_labels(upload_fields)
    rows = [build_row(submission_id, uploaded_at, f, submitter_email, labels) for f in files]

    meta = await sheets.get_metadata(spreadsheet_id)
    sheet_id, sheet_title = _first_sheet(meta)
    result = await sheets.append_rows(spreadsheet_id, f"{sheet_title}!A:J", rows)

    span = parse_row_span((result.get("updates") or {}).get("updatedRange"))
    if span:
        start, end = span
        await sheets.batch_update(spreadsheet_id, [{
            "repeatCell": {
                "range": {
                    "sheetId": sheet_id,
                    "startRowIndex": start,
                    "endRowIndex": end,
                    "startColumnIndex": 0,
                    "endColumnIndex": len(HEADERS),
                },
                "cell": {
                    "userEnteredFormat": {
                        "backgroundColor": WHITE,
                        "textFormat": {"bold": False},
                    }
                },
                "fields": "userEnteredFormat(backgroundColor,textFormat)",
            }
        }])
    return len(rows)


async def sync_files(
    db: AsyncSession,
    form: Form,
    submission_id: str,
    submitter_email: str | None,
    files: list[SubmittedFile],
    submitted_at: datetime | None = None,
) -> str:
    """Write a submission's files to the form owner's response sheet."""
    if not form.user_id:
        raise GoogleNotLinkedError("Form has no owner with a linked Google account")

    try:
        async with google_account_svc.google_client_for(db, form.user_id) as google:
            spreadsheet_id = await ensure_sheet(db, google.sheets, form.id, form.title)
            await append_file_rows(
                google.sheets,
                spreadsheet_id,
                submission_id,
                submitter_email,
                files,
                submitted_at=submitted_at,
                upload_fields=form.upload_fields,
            )
    except GoogleAPIError as exc:
        if exc.is_permission_error:
            raise SheetsPermissionError() from exc
        raise
    return spreadsheet_id

"""Legacy "Upload Metadata" spreadsheet - one row per submission event."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..google.client import GoogleClient, GoogleNotLinkedError
from ..models.form import Form
from ..schemas.submission import SubmittedFile
from . import google_account_svc
from .form_status import to_utc

log = logging.getLogger(__name__)

APP_FOLDER_NAME = "File Uploader Pro"
SHEET_TITLE = "Submissions"
METADATA_HEADERS = [
    "Timestamp",
    "Submitter Name",
    "Submitter Email",
    "File Name",
    "File Type",
    "File Size (bytes)",
    "File URL",
    "All Files",
    "Answers",
    "Metadata",
]
HEADER_BACKGROUND = {"red": 0.2, "green": 0.4, "blue": 0.8}


async def _target_folder(google: GoogleClient, drive_folder_id: str | None) -> str | None:
    if not drive_folder_id:
        return None
    folder = await google.drive.find_folder(APP_FOLDER_NAME, drive_folder_id)
    if folder:
        return folder["id"]
    created = await google.drive.create_folder(APP_FOLDER_NAME, drive_folder_id)
    return created["id"]


async def get_or_create_spreadsheet(
    google: GoogleClient, form_title: str, drive_folder_id: str | None
) -> str:
    """Find the form's metadata spreadsheet by name, or create it with a formatted header."""
    name = f"{form_title} - Upload Metadata"
    folder_id = await _target_folder(google, drive_folder_id)

    existing = await google.drive.find_spreadsheet(name, folder_id)
    if existing:
        return existing["id"]

    created = await google.sheets.create_spreadsheet(
        name, sheets=[{"properties": {"title": SHEET_TITLE}}]
    )
    spreadsheet_id = created["spreadsheetId"]
    sheet_id = int(((created.get("sheets") or [{}])[0].get("properties") or {}).get("sheetId", 0))

    if folder_id:
        await google.drive.move_to_folder(spreadsheet_id, folder_id)

    await google.sheets.write_range(spreadsheet_id, f"{SHEET_TITLE}!A1:J1", [METADATA_HEADERS])
    await google.sheets.batch_update(spreadsheet_id, [
        {
            "repeatCell": {
                "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                "cell": {
                    "userEnteredFormat": {
                        "backgroundColor": HEADER_BACKGROUND,
                        "textFormat": {
                            "foregroundColor": {"red": 1.0, "green": 1.0, "blue": 1.0},
                            "bold": True,
                        },
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
    ])
    log.info("Created metadata spreadsheet %s (%s)", spreadsheet_id, name)
    return spreadsheet_id


def build_row(
    timestamp: datetime,
    submitter_name: str | None,
    submitter_email: str | None,
    files: list[SubmittedFile],
    answers: list[dict[str, Any]],
    meta: dict[str, Any] | None,
) -> list[Any]:
    primary = files[0] if files else None
    return [
        to_utc(timestamp).isoformat(),
        submitter_name or "",
        submitter_email or "",
        primary.name if primary else "",
        primary.type if primary else "",
        str(primary.size if primary else 0),
        primary.url if primary else "",
        "; ".join(f"{f.name} ({f.type})" for f in files),
        "; ".join(f"{a.get('question_id')}: {a.get('answer')}" for a in answers),
        json.dumps(meta or {}),
    ]


async def append_submission(
    db: AsyncSession,
    form: Form,
    *,
    timestamp: datetime,
    submitter_name: str | None,
    submitter_email: str | None,
    files: list[SubmittedFile],
    answers: list[dict[str, Any]],
    meta: dict[str, Any] | None = None,
) -> str:
    if not form.user_id:
        raise GoogleNotLinkedError("Form has no owner with a linked Google account")

    row = build_row(timestamp, submitter_name, submitter_email, files, answers, meta)
    async with google_account_svc.google_client_for(db, form.user_id) as google:
        spreadsheet_id = await get_or_create_spreadsheet(google, form.title, form.drive_folder_id)
        await google.sheets.append_rows(
            spreadsheet_id, f"{SHEET_TITLE}!A:Z", [row], value_input_option="RAW"
        )
    log.info("Appended submission to metadata spreadsheet %s", spreadsheet_id)
    return spreadsheet_id

"""Export a list of submissions into a fresh spreadsheet."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from ..google.client import GoogleClient
from .form_status import to_utc

log = logging.getLogger(__name__)

EXPORT_HEADERS = ["File Name", "Uploader Name", "Email", "Form", "Size", "Date", "File URL"]
SHEET_URL = "https://docs.google.com/spreadsheets/d/{id}/edit"


def _pick(sub: dict[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = sub.get(key)
        if value not in (None, ""):
            return value
    return default


def format_export_size(size: int | None) -> str:
    size = int(size or 0)
    if size == 0:
        return "0 MB"
    mb = size / 1024 / 1024
    return "< 0.01 MB" if mb < 0.01 else f"{mb:.2f} MB"


def format_export_date(value: Any) -> str:
    """'Dec 27, 2025' or '' when the value is not a timestamp."""
    if not value:
        return ""
    try:
        dt = to_utc(value)
    except (TypeError, ValueError):
        return ""
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def export_title(submissions: list[dict[str, Any]], form_id: str | None, today: date) -> str:
    titles = {
        t for t in (_pick(s, "form_title", "formTitle") for s in submissions)
        if t and t != "Unknown"
    }
    if len(titles) == 1:
        form_name = next(iter(titles))
    elif form_id and submissions:
        form_name = _pick(submissions[0], "form_title", "formTitle", default="Unknown Form")
    else:
        form_name = "All Forms"
    return f"{form_name} Exports - {today.strftime('%d/%m/%Y')}"


def build_rows(submissions: list[dict[str, Any]]) -> list[list[Any]]:
    return [
        [
            _pick(s, "file_name", "fileName"),
            _pick(s, "submitter_name", "submitterName"),
            _pick(s, "submitter_email", "submitterEmail"),
            _pick(s, "form_title", "formTitle", default="Unknown"),
            format_export_size(_pick(s, "file_size", "fileSize", default=0)),
            format_export_date(_pick(s, "submitted_at", "submittedAt", "created_at", "createdAt")),
            _pick(s, "file_url", "fileUrl"),
        ]
        for s in submissions
    ]


async def export_submissions(
    google: GoogleClient,
    submissions: list[dict[str, Any]],
    form_id: str | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    title = export_title(submissions, form_id, today or datetime.now().date())
    rows = build_rows(submissions)

    created = await google.sheets.create_spreadsheet(title, sheets=[{
        "properties": {
            "sheetId": 0,
            "title": "Sheet1",
            "gridProperties": {
                "rowCount": max(1000, len(rows) + 10),
                "columnCount": len(EXPORT_HEADERS),
                "frozenRowCount": 1,
            },
        }
    }])
    spreadsheet_id = created["spreadsheetId"]

    await google.sheets.write_range(
        spreadsheet_id, "Sheet1!A1", [EXPORT_HEADERS, *rows], value_input_option="USER_ENTERED"
    )
    await google.sheets.batch_update(spreadsheet_id, [
        {
            "repeatCell": {
                "range": {"sheetId": 0, "startRowIndex": 0, "endRowIndex": 1},
                "cell": {
                    "userEnteredFormat": {
                        "backgroundColor": {"red": 0.2, "green": 0.4, "blue": 0.8},
                        "textFormat": {
                            "foregroundColor": {"red": 1.0, "green": 1.0, "blue": 1.0},
                            "bold": True,
                            "fontSize": 10,
                        },
                        "horizontalAlignment": "CENTER",
                    }
                },
                "fields": "userEnteredFormat(backgroundColor,textFormat,horizontalAlignment)",
            }
        },
        {
            "autoResizeDimensions": {
                "dimensions": {
                    "sheetId": 0,
                    "dimension": "COLUMNS",
                    "startIndex": 0,
                    "endIndex": len(EXPORT_HEADERS),
                }
            }
        },
    ])
    log.info("Exported %d submissions to %s", len(rows), spreadsheet_id)
    return {
        "sheet_id": spreadsheet_id,
        "sheet_url": SHEET_URL.format(id=spreadsheet_id),
        "row_count": len(rows),
    }

"""Tests for the legacy metadata spreadsheet."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from uploadforms.models import Form
from uploadforms.schemas.submission import SubmittedFile
from uploadforms.services import google_account_svc, metadata_sheet_svc
from uploadforms.services.metadata_sheet_svc import APP_FOLDER_NAME, METADATA_HEADERS


def _google(existing_sheet=None, existing_folder=None):
    drive = AsyncMock()
    drive.find_folder.return_value = existing_folder
    drive.create_folder.return_value = {"id": "app-folder"}
    drive.find_spreadsheet.return_value = existing_sheet
    sheets = AsyncMock()
    sheets.create_spreadsheet.return_value = {
        "spreadsheetId": "meta-1",
        "sheets": [{"properties": {"sheetId": 0, "title": "Submissions"}}],
    }
    return SimpleNamespace(drive=drive, sheets=sheets)


@pytest.mark.asyncio
async def test_creates_folder_and_sheet():
    google = _google()
    sheet_id = await metadata_sheet_svc.get_or_create_spreadsheet(google, "Resumes", "root-folder")

    assert sheet_id == "meta-1"
    google.drive.find_folder.assert_awaited_once_with(APP_FOLDER_NAME, "root-folder")
    google.drive.create_folder.assert_awaited_once_with(APP_FOLDER_NAME, "root-folder")
    google.drive.find_spreadsheet.assert_awaited_once_with("Resumes - Upload Metadata", "app-folder")
    google.drive.move_to_folder.assert_awaited_once_with("meta-1", "app-folder")
    google.sheets.write_range.assert_awaited_once_with(
        "meta-1", "Submissions!A1:J1", [METADATA_HEADERS]
    )


@pytest.mark.asyncio
async def test_reuses_existing_sheet():
    google = _google(existing_sheet={"id": "found"}, existing_folder={"id": "app-folder"})
    assert await metadata_sheet_svc.get_or_create_spreadsheet(google, "Resumes", "root") == "found"
    google.sheets.create_spreadsheet.assert_not_awaited()
    google.drive.create_folder.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_drive_folder_skips_move():
    google = _google()
    await metadata_sheet_svc.get_or_create_spreadsheet(google, "Resumes", None)
    google.drive.find_folder.assert_not_awaited()
    google.drive.move_to_folder.assert_not_awaited()


def test_build_row():
    files = [
        SubmittedFile(url="https://u/1", name="cv.pdf", type="application/pdf", size=99),
        SubmittedFile(url="https://u/2", name="pic.png", type="image/png", size=5),
    ]
    row = metadata_sheet_svc.build_row(
        datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "Ada", None, files,
        [{"question_id": "q1", "answer": "yes"}],
        {"source": "web"},
    )
    assert row[:7] == ["2025-01-02T03:04:05+00:00", "Ada", "", "cv.pdf", "application/pdf", "99", "https://u/1"]
    assert row[7] == "cv.pdf (application/pdf); pic.png (image/png)"
    assert row[8] == "q1: yes"
    assert json.loads(row[9]) == {"source": "web"}


@pytest.mark.asyncio
async def test_append_submission(db: AsyncSession, published_form: Form, monkeypatch: pytest.MonkeyPatch):
    google = _google(existing_sheet={"id": "found"})

    @asynccontextmanager
    async def client_for(db, user_id):
        yield google

    monkeypatch.setattr(google_account_svc, "google_client_for", client_for)

    sheet_id = await metadata_sheet_svc.append_submission(
        db,
        published_form,
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        submitter_name=None,
        submitter_email="a@b.c",
        files=[SubmittedFile(url="https://u", name="f.txt")],
        answers=[],
    )
    assert sheet_id == "found"
    args, kwargs = google.sheets.append_rows.await_args
    assert args[0:2] == ("found", "Submissions!A:Z")
    assert kwargs["value_input_option"] == "RAW"

"""Sheets API - spreadsheet operations."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING
from urllib.parse import quote

from .client import SHEETS_BASE_URL

if TYPE_CHECKING:
    from .client import GoogleClient


class SheetsAPI:
    """Google Sheets v4.

    Usage:
        async with GoogleClient(token) as google:
            created = await google.sheets.create_spreadsheet("Resumes - Uploads")
            await google.sheets.append_rows(created["spreadsheetId"], "Sheet1!A:J", rows)
    """

    def __init__(self, client: "GoogleClient"):
        self._client = client

    @staticmethod
    def _url(spreadsheet_id: str, suffix: str = "") -> str:
        return f"{SHEETS_BASE_URL}/spreadsheets/{quote(spreadsheet_id, safe='')}{suffix}"

    async def create_spreadsheet(
        self, title: str, sheets: list[dict[str, Any]] | None = None
    ) -> dict[str, Any]:
        """Create a spreadsheet.

        Returns:
            {"spreadsheetId": ..., "sheets": [{"properties": {"sheetId": 0, "title": "Sheet1"}}], ...}
        """
        body: dict[str, Any] = {"properties": {"title": title}}
        if sheets:
            body["sheets"] = sheets
        return await self._client._post(f"{SHEETS_BASE_URL}/spreadsheets", body)

    async def get_metadata(self, spreadsheet_id: str) -> dict[str, Any]:
        """Fetch spreadsheet properties and sheet list (no cell data)."""
        return await self._client._get(
            self._url(spreadsheet_id),
            fields="spreadsheetId,properties.title,sheets.properties",
        )

    async def write_range(
        self,
        spreadsheet_id: str,
        range_: str,
        values: list[list[Any]],
        value_input_option: str = "RAW",
    ) -> dict[str, Any]:
        return await self._client._put(
            self._url(spreadsheet_id, f"/values/{quote(range_, safe='')}"),
            {"range": range_, "majorDimension": "ROWS", "values": values},
            valueInputOption=value_input_option,
        )

    async def append_rows(
        self,
        spreadsheet_id: str,
        range_: str,
        values: list[list[Any]],
        value_input_option: str = "USER_ENTERED",
    ) -> dict[str, Any]:
        """Append rows after the last row of the table found in ``range_``.

        Returns:
            {"updates": {"updatedRange": "Sheet1!A5:J7", "updatedRows": 3, ...}}
        """
        return await self._client._post(
            self._url(spreadsheet_id, f"/values/{quote(range_, safe='')}:append"),
            {"majorDimension": "ROWS", "values": values},
            valueInputOption=value_input_option,
            insertDataOption="INSERT_ROWS",
        )

    async def batch_update(
        self, spreadsheet_id: str, requests: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return await self._client._post(
            self._url(spreadsheet_id, ":batchUpdate"), {"requests": requests}
        )

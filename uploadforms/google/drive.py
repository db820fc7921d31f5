"""Drive API - folder lookup and placement for spreadsheets."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from .client import DRIVE_BASE_URL

if TYPE_CHECKING:
    from .client import GoogleClient

FOLDER_MIME = "application/vnd.google-apps.folder"
SPREADSHEET_MIME = "application/vnd.google-apps.spreadsheet"


def _quote_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveAPI:
    """Google Drive v3 (only what spreadsheet placement needs)."""

    def __init__(self, client: "GoogleClient"):
        self._client = client

    async def _find_one(self, query: str) -> dict[str, Any] | None:
        data = await self._client._get(
            f"{DRIVE_BASE_URL}/files",
            q=query,
            fields="files(id,name)",
            pageSize=1,
            supportsAllDrives="true",
            includeItemsFromAllDrives="true",
        )
        files = data.get("files") or []
        return files[0] if files else None

    async def find_folder(self, name: str, parent_id: str | None = None) -> dict[str, Any] | None:
        query = f"name = '{_quote_query(name)}' and mimeType = '{FOLDER_MIME}' and trashed = false"
        if parent_id:
            query += f" and '{_quote_query(parent_id)}' in parents"
        return await self._find_one(query)

    async def create_folder(self, name: str, parent_id: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME}
        if parent_id:
            body["parents"] = [parent_id]
        return await self._client._post(
            f"{DRIVE_BASE_URL}/files", body, fields="id", supportsAllDrives="true"
        )

    async def find_spreadsheet(self, name: str, parent_id: str | None = None) -> dict[str, Any] | None:
        query = f"name = '{_quote_query(name)}' and mimeType = '{SPREADSHEET_MIME}' and trashed = false"
        if parent_id:
            query += f" and '{_quote_query(parent_id)}' in parents"
        return await self._find_one(query)

    async def move_to_folder(self, file_id: str, folder_id: str, remove_from: str = "root") -> dict[str, Any]:
        return await self._client._patch(
            f"{DRIVE_BASE_URL}/files/{file_id}",
            {},
            addParents=folder_id,
            removeParents=remove_from,
            fields="id,parents",
            supportsAllDrives="true",
        )

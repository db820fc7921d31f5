"""Google REST client - typed wrapper for the Sheets v4 and Drive v3 APIs.

Usage:
    async with GoogleClient(access_token) as google:
        meta = await google.sheets.get_metadata(spreadsheet_id)
        folder = await google.drive.find_folder("File Uploader Pro", parent_id)
"""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .drive import DriveAPI
    from .sheets import SheetsAPI

log = logging.getLogger(__name__)

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4"
DRIVE_BASE_URL = "https://www.googleapis.com/drive/v3"


class GoogleAPIError(Exception):
    """Non-2xx response (or transport failure) from a Google API."""

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason

    @property
    def is_permission_error(self) -> bool:
        if self.status_code == 403:
            return True
        text = f"{self.message} {self.reason or ''}".lower()
        return "permission" in text or "insufficient" in text

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @classmethod
    def from_response(cls, response: httpx.Response) -> "GoogleAPIError":
        message = response.reason_phrase or f"HTTP {response.status_code}"
        reason = None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            err = payload["error"]
            message = str(err.get("message") or message)
            reason = err.get("status")
        return cls(message, status_code=response.status_code, reason=reason)


class GoogleNotLinkedError(Exception):
    """Raised when a user has no stored Google credentials."""


class GoogleClient:
    """Google API client with Sheets and Drive sub-APIs."""

    def __init__(
        self,
        access_token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.access_token = access_token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._sheets: SheetsAPI | None = None
        self._drive: DriveAPI | None = None

    async def __aenter__(self) -> "GoogleClient":
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Accept": "application/json",
            },
            transport=self._transport,
        )

        from .drive import DriveAPI
        from .sheets import SheetsAPI

        self._sheets = SheetsAPI(self)
        self._drive = DriveAPI(self)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()

    @property
    def sheets(self) -> "SheetsAPI":
        """Sheets v4 API."""
        if not self._sheets:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        return self._sheets

    @property
    def drive(self) -> "DriveAPI":
        """Drive v3 API."""
        if not self._drive:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        return self._drive

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        try:
            resp = await self._client.request(method, url, params=params, json=json_body)
        except httpx.HTTPError as exc:
            log.warning("Google request failed method=%s url=%s error=%s", method, url, exc)
            raise GoogleAPIError(str(exc) or exc.__class__.__name__) from exc

        if resp.is_error:
            raise GoogleAPIError.from_response(resp)
        if not resp.content:
            return {}
        return resp.json()

    async def _get(self, url: str, **params) -> dict[str, Any]:
        return await self._request("GET", url, params=params or None)

    async def _post(self, url: str, data: dict | None = None, **params) -> dict[str, Any]:
        return await self._request("POST", url, params=params or None, json_body=data)

    async def _put(self, url: str, data: dict | None = None, **params) -> dict[str, Any]:
        return await self._request("PUT", url, params=params or None, json_body=data)

    async def _patch(self, url: str, data: dict | None = None, **params) -> dict[str, Any]:
        return await self._request("PATCH", url, params=params or None, json_body=data)

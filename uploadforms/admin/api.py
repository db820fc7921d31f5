"""Admin API client - typed wrapper for the form builder REST endpoints.

Usage:
    async with AdminAPI("http://localhost:8000") as api:
        forms = await api.list_forms()
        await api.update_form(forms[0]["id"], {"is_accepting_responses": False})
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import settings

log = logging.getLogger(__name__)


class AdminAPIError(Exception):
    """Non-2xx response (or transport failure) from the upload forms API."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AdminAPI:
    def __init__(
        self,
        base_url: str | None = None,
        session_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or settings.admin_api_url).rstrip("/")
        self._session_token = session_token
        self._transport = transport
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AdminAPI":
        headers = {"Accept": "application/json"}
        if self._session_token:
            headers["Authorization"] = f"Bearer {self._session_token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise AdminAPIError(str(exc) or exc.__class__.__name__) from exc

        if resp.is_error:
            try:
                detail = resp.json().get("detail")
            except (ValueError, AttributeError):
                detail = resp.text
            log.debug("Admin API %s %s -> %s", method, path, resp.status_code)
            raise AdminAPIError(
                f"{method} {path} failed ({resp.status_code})",
                status_code=resp.status_code,
                detail=detail,
            )
        return resp.json() if resp.content else None

    async def list_forms(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/forms")

    async def get_form(self, form_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/forms/{form_id}")

    async def create_form(self, title: str | None = None, description: str | None = None) -> dict[str, Any]:
        body = {k: v for k, v in {"title": title, "description": description}.items() if v is not None}
        return await self._request("POST", "/api/forms", json=body)

    async def update_form(self, form_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", f"/api/forms/{form_id}", json=data)

    async def delete_form(self, form_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/api/forms/{form_id}")

    async def publish_form(self, form_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/api/forms/{form_id}/publish")

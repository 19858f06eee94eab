"""
Async HTTP client for the Issues Register API.

The session cookie set by login/register lives in the underlying httpx cookie
jar, so one IssuesApiClient corresponds to one browser session.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class IssuesApiClient:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5001",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "IssuesApiClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        kwargs: dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        resp = await self._client.request(method, path, **kwargs)
        if resp.status_code >= 400:
            message = resp.reason_phrase or "Request failed"
            try:
                body = resp.json()
                if isinstance(body, dict) and isinstance(body.get("error"), str):
                    message = body["error"]
            except ValueError:
                pass
            raise ApiError(resp.status_code, message)
        return resp.json()

    # -- auth --------------------------------------------------------------

    async def register(self, email: str, password: str, name: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"email": email, "password": password}
        if name is not None:
            body["name"] = name
        return await self._request("POST", "/api/auth/register", json=body)

    async def login(self, email: str, password: str) -> dict[str, Any]:
        return await self._request("POST", "/api/auth/login", json={"email": email, "password": password})

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout")

    async def change_password(self, old_password: str, new_password: str) -> None:
        await self._request(
            "POST",
            "/api/auth/change-password",
            json={"oldPassword": old_password, "newPassword": new_password},
        )

    async def me(self) -> dict[str, Any]:
        return await self._request("GET", "/api/me")

    async def update_profile(self, display_name: str | None) -> None:
        await self._request("PATCH", "/api/me", json={"displayName": display_name})

    # -- projects ----------------------------------------------------------

    async def get_projects(self) -> list[Any]:
        data = await self._request("GET", "/api/projects")
        if not isinstance(data, list):
            raise ApiError(500, "Server returned a non-array document")
        return data

    async def put_projects(self, projects: list[Any]) -> None:
        await self._request("PUT", "/api/projects", json=projects)

    async def get_backup(self) -> dict[str, Any]:
        return await self._request("GET", "/api/backup")

    async def restore(self, artifact: Any) -> None:
        await self._request("POST", "/api/restore", json=artifact)

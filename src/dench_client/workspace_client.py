"""HTTP client for the workspace mutation endpoints."""
from typing import Any

import httpx

from .config import ClientSettings, client_settings


class WorkspaceRequestError(Exception):
    """A workspace operation failed on the server."""

    def __init__(self, status_code: int, reason: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.message = message


class WorkspaceClient:
    """Calls the mutation endpoints and returns their JSON bodies.

    Delete has no undo; callers are expected to confirm with the user first.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        config: ClientSettings | None = None,
    ):
        config = config or client_settings
        self.base_url = (base_url or config.base_url).rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.request_timeout_seconds)

    async def __aenter__(self) -> "WorkspaceClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        response = await self._http.request(method, f"{self.base_url}/api/workspace{path}", **kwargs)
        if response.is_success:
            return response.json()

        reason, message = "IOFailure", response.text
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = None
        if isinstance(detail, dict):
            reason = detail.get("reason", reason)
            message = detail.get("error", message)
        elif isinstance(detail, str):
            message = detail
        raise WorkspaceRequestError(response.status_code, reason, message)

    async def tree(self) -> dict[str, Any]:
        return await self._request("GET", "/tree")

    async def read_file(self, path: str) -> dict[str, Any]:
        return await self._request("GET", "/file", params={"path": path})

    async def write_file(self, path: str, content: str) -> dict[str, Any]:
        return await self._request("POST", "/file", json={"path": path, "content": content})

    async def delete(self, path: str) -> dict[str, Any]:
        return await self._request("DELETE", "/file", json={"path": path})

    async def rename(self, path: str, new_name: str) -> dict[str, Any]:
        return await self._request("POST", "/rename", json={"path": path, "newName": new_name})

    async def move(self, source_path: str, destination_dir: str) -> dict[str, Any]:
        return await self._request(
            "POST", "/move", json={"sourcePath": source_path, "destinationDir": destination_dir}
        )

    async def copy(self, path: str, destination_path: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"path": path}
        if destination_path is not None:
            body["destinationPath"] = destination_path
        return await self._request("POST", "/copy", json=body)

    async def mkdir(self, path: str) -> dict[str, Any]:
        return await self._request("POST", "/mkdir", json={"path": path})

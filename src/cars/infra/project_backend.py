"""Admin calls proxied to a project's deployed backend."""

from typing import Any

import httpx


class ProjectBackendError(Exception):
    def __init__(self, status_code: int, detail: Any):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail


class ProjectBackendClient:
    """POSTs to https://<backend host>/admin/<action> with the project's bearer token."""

    async def call_admin(
        self, backend_host: str, bearer_token: str, action: str, timeout: float
    ) -> Any:
        url = f"https://{backend_host}/admin/{action}"
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(
                    url, json={}, headers={"Authorization": f"Bearer {bearer_token}"}
                )
        except httpx.HTTPError as e:
            raise ProjectBackendError(500, str(e)) from e
        if resp.status_code >= 400:
            try:
                detail = resp.json()
            except ValueError:
                detail = resp.text
            raise ProjectBackendError(resp.status_code, detail)
        try:
            return resp.json()
        except ValueError:
            return resp.text

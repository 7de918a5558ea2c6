"""
Task backend client.

``TaskBackend`` is the full set of operations the panel needs from the REST
backend. ``RestTaskClient`` implements it over httpx. Every failure (HTTP
error status, unparseable payload, transport error) is raised as
``BackendError`` with the backend's own message; nothing is retried.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import httpx
import structlog
from pydantic import ValidationError

from .config import BackendConfig
from .errors import BackendError
from .schemas import (
    BackendAttachment,
    BackendResource,
    BackendTask,
    BackendTaskDetail,
    ResourceLineCreate,
    ResourceLineUpdate,
    TaskRejection,
    TaskUpdate,
)

log = structlog.get_logger()


class TaskBackend(Protocol):
    async def get_task_detail(self, task_id: int) -> BackendTaskDetail: ...

    async def update_task(self, task_id: int, update: TaskUpdate) -> BackendTask: ...

    async def create_resource_line(
        self, task_id: int, body: ResourceLineCreate
    ) -> BackendResource: ...

    async def update_resource_line(
        self, task_id: int, line_id: int, body: ResourceLineUpdate
    ) -> BackendResource: ...

    async def delete_resource_line(self, task_id: int, line_id: int) -> None: ...

    async def upload_attachment(
        self, task_id: int, file_name: str, content: bytes, notes: Optional[str] = None
    ) -> BackendAttachment: ...

    async def delete_attachment(self, task_id: int, attachment_id: int) -> None: ...

    async def approve_task(self, task_id: int) -> BackendTask: ...

    async def reject_task(self, task_id: int, reason: str) -> BackendTask: ...


def error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response."""
    fallback = f"HTTP error! status: {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return fallback

    if isinstance(data, dict):
        for key in ("error", "detail", "message"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
        # DRF field errors: {"quantity": ["Ensure this value is ..."]}
        for field, value in data.items():
            if isinstance(value, list) and value:
                return f"{field}: {value[0]}"
            if isinstance(value, str) and value:
                return f"{field}: {value}"
    elif isinstance(data, list) and data and isinstance(data[0], str):
        return data[0]
    return fallback


class RestTaskClient:
    """Async REST client for the task endpoints."""

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        verify_tls: bool = True,
        request_timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._verify_tls = verify_tls
        self._request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: BackendConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "RestTaskClient":
        return cls(
            base_url=config.url,
            api_token=config.api_token,
            verify_tls=config.verify_tls,
            request_timeout=config.request_timeout_seconds,
            transport=transport,
        )

    async def open(self) -> None:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(self._request_timeout),
            verify=self._verify_tls,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RestTaskClient":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        assert self._client, "client not opened"
        log.debug("client.request", method=method, path=path)
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.error("client.transport_error", method=method, path=path, error=str(exc))
            raise BackendError(str(exc) or "Network error occurred") from exc

        if resp.is_error:
            message = error_message(resp)
            log.error(
                "client.http_error",
                method=method,
                path=path,
                status=resp.status_code,
                error=message,
            )
            raise BackendError(message, status_code=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(
                f"Invalid JSON from {method} {path}", status_code=resp.status_code
            ) from exc

    @staticmethod
    def _parse(model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise BackendError(f"Unexpected {model.__name__} payload: {exc}") from exc

    # --- Task ---

    async def get_task_detail(self, task_id: int) -> BackendTaskDetail:
        data = await self._request("GET", f"/api/tasks/{task_id}/")
        return self._parse(BackendTaskDetail, data)

    async def update_task(self, task_id: int, update: TaskUpdate) -> BackendTask:
        data = await self._request(
            "PATCH",
            f"/api/tasks/{task_id}/",
            json=update.model_dump(mode="json", exclude_unset=True),
        )
        return self._parse(BackendTask, data)

    # --- Resource lines ---

    async def create_resource_line(
        self, task_id: int, body: ResourceLineCreate
    ) -> BackendResource:
        data = await self._request(
            "POST", f"/api/tasks/{task_id}/resources/", json=body.model_dump(mode="json")
        )
        return self._parse(BackendResource, data)

    async def update_resource_line(
        self, task_id: int, line_id: int, body: ResourceLineUpdate
    ) -> BackendResource:
        data = await self._request(
            "PATCH",
            f"/api/tasks/{task_id}/resources/{line_id}/",
            json=body.model_dump(mode="json"),
        )
        return self._parse(BackendResource, data)

    async def delete_resource_line(self, task_id: int, line_id: int) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}/resources/{line_id}/")

    # --- Attachments ---

    async def upload_attachment(
        self, task_id: int, file_name: str, content: bytes, notes: Optional[str] = None
    ) -> BackendAttachment:
        form = {"notes": notes} if notes else {}
        data = await self._request(
            "POST",
            f"/api/tasks/{task_id}/attachments/",
            files={"file": (file_name, content)},
            data=form,
        )
        return self._parse(BackendAttachment, data)

    async def delete_attachment(self, task_id: int, attachment_id: int) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}/attachments/{attachment_id}/")

    # --- Approval ---

    async def approve_task(self, task_id: int) -> BackendTask:
        data = await self._request("POST", f"/api/tasks/{task_id}/approve/")
        return self._parse(BackendTask, data)

    async def reject_task(self, task_id: int, reason: str) -> BackendTask:
        data = await self._request(
            "POST",
            f"/api/tasks/{task_id}/reject/",
            json=TaskRejection(reason=reason).model_dump(),
        )
        return self._parse(BackendTask, data)

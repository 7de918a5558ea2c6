"""
Shared fixtures for task panel tests.
"""

from __future__ import annotations

import copy
from decimal import Decimal
from typing import Optional

import httpx
import pytest

from fieldops_panel.client import RestTaskClient
from fieldops_panel.errors import BackendError
from fieldops_panel.panel import TaskDetailPanel
from fieldops_panel.schemas import (
    BackendAttachment,
    BackendResource,
    BackendTask,
    BackendTaskDetail,
    ResourceLineCreate,
    ResourceLineUpdate,
    TaskUpdate,
)

from .mock_servers import create_backend_app

TASK_ID = 1


def task_detail_payload(**overrides) -> dict:
    payload = {
        "id": TASK_ID,
        "task_name": "Replace valve at pump house",
        "deadline": "2026-10-20",
        "location": "Sector 4",
        "employee_name": "R. Kumar",
        "project_name": "Water works",
        "status": "Draft",
        "approval_status": "pending",
        "internal_notes": "",
        "resources": [
            {"id": 1, "resource_name": "Pipe", "quantity": "4", "unit_cost": "25", "total_cost": "100"},
        ],
        "attachments": [],
        "activity_feed": [
            {"id": 21, "action": "CREATED", "description": "Task created",
             "created_by_username": "owner", "created_at": "2026-10-16T08:00:00Z"},
        ],
    }
    payload.update(overrides)
    return payload


class FakeBackend:
    """In-memory TaskBackend that records every call."""

    def __init__(self, detail: dict | None = None):
        self.detail = detail or task_detail_payload()
        self.calls: list[tuple] = []
        self.fail_on: dict[str, str] = {}
        self._next_id = 500

    def _call(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise BackendError(self.fail_on[name], status_code=400)

    def called(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def get_task_detail(self, task_id: int) -> BackendTaskDetail:
        self._call("get_task_detail", task_id)
        return BackendTaskDetail.model_validate(copy.deepcopy(self.detail))

    async def update_task(self, task_id: int, update: TaskUpdate) -> BackendTask:
        self._call("update_task", task_id, update)
        self.detail["internal_notes"] = update.internal_notes
        return BackendTask.model_validate(self.detail)

    async def create_resource_line(self, task_id: int, body: ResourceLineCreate) -> BackendResource:
        self._call("create_resource_line", task_id, body)
        self._next_id += 1
        line = {"id": self._next_id, **body.model_dump(mode="json")}
        self.detail["resources"].append(line)
        return BackendResource.model_validate(line)

    async def update_resource_line(
        self, task_id: int, line_id: int, body: ResourceLineUpdate
    ) -> BackendResource:
        self._call("update_resource_line", task_id, line_id, body)
        for line in self.detail["resources"]:
            if line["id"] == line_id:
                line.update(body.model_dump(mode="json"))
                return BackendResource.model_validate(line)
        raise BackendError("Resource not found", status_code=404)

    async def delete_resource_line(self, task_id: int, line_id: int) -> None:
        self._call("delete_resource_line", task_id, line_id)
        self.detail["resources"] = [r for r in self.detail["resources"] if r["id"] != line_id]

    async def upload_attachment(
        self, task_id: int, file_name: str, content: bytes, notes: Optional[str] = None
    ) -> BackendAttachment:
        self._call("upload_attachment", task_id, file_name, content, notes)
        self._next_id += 1
        att = {"id": self._next_id, "file_name": file_name, "file_url": f"/media/{file_name}",
               "notes": notes, "created_by_username": "owner"}
        self.detail["attachments"].append(att)
        return BackendAttachment.model_validate(att)

    async def delete_attachment(self, task_id: int, attachment_id: int) -> None:
        self._call("delete_attachment", task_id, attachment_id)
        self.detail["attachments"] = [
            a for a in self.detail["attachments"] if a["id"] != attachment_id
        ]

    async def approve_task(self, task_id: int) -> BackendTask:
        self._call("approve_task", task_id)
        self.detail["approval_status"] = "approved"
        return BackendTask.model_validate(self.detail)

    async def reject_task(self, task_id: int, reason: str) -> BackendTask:
        self._call("reject_task", task_id, reason)
        self.detail["approval_status"] = "rejected"
        self.detail["status"] = "Canceled"
        return BackendTask.model_validate(self.detail)


class ScriptedPrompter:
    """Prompter/Notifier that answers from queues and records what it was asked."""

    def __init__(self, confirm: bool = True, texts: list[Optional[str]] | None = None):
        self.confirm_answer = confirm
        self.texts = list(texts or [])
        self.confirmations: list[tuple[str, str]] = []
        self.questions: list[tuple[str, str]] = []
        self.alerts: list[tuple[str, str]] = []
        self.successes: list[str] = []

    async def confirm(self, title: str, message: str) -> bool:
        self.confirmations.append((title, message))
        return self.confirm_answer

    async def ask_text(self, title: str, message: str) -> Optional[str]:
        self.questions.append((title, message))
        return self.texts.pop(0) if self.texts else None

    def success(self, message: str) -> None:
        self.successes.append(message)

    def alert(self, title: str, message: str) -> None:
        self.alerts.append((title, message))


def D(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
async def panel(backend, prompter) -> TaskDetailPanel:
    p = TaskDetailPanel(backend, TASK_ID, prompter=prompter, notifier=prompter)
    assert await p.fetch_detail()
    backend.calls.clear()
    return p


@pytest.fixture
def backend_app():
    return create_backend_app()


@pytest.fixture
async def rest_client(backend_app):
    client = RestTaskClient(
        "http://testserver",
        api_token="test-token",
        transport=httpx.ASGITransport(app=backend_app),
    )
    async with client:
        yield client

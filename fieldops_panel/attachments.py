"""
Attachment manager: files attached to a task.

Uploads and deletes go straight to the backend; there is no local-only
attachment state. Each successful change is followed by a full detail
re-fetch so the activity trail picks up the upload/delete event.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional

import structlog

from .activity import UNKNOWN_USER
from .client import TaskBackend
from .errors import BackendError
from .prompts import Notifier, Prompter
from .schemas import BackendAttachment

log = structlog.get_logger()

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
DOC_EXTENSIONS = (".doc", ".docx")


def classify_file(file_name: str) -> str:
    """image | pdf | doc | other, by extension."""
    name = file_name.lower()
    if name.endswith(".pdf"):
        return "pdf"
    if name.endswith(IMAGE_EXTENSIONS):
        return "image"
    if name.endswith(DOC_EXTENSIONS):
        return "doc"
    return "other"


@dataclass(frozen=True)
class Attachment:
    id: int
    file_name: str
    file_url: str
    file_type: str
    uploaded_by: str
    uploaded_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_backend(cls, attachment: BackendAttachment) -> "Attachment":
        return cls(
            id=attachment.id,
            file_name=attachment.file_name,
            file_url=attachment.file_url,
            file_type=classify_file(attachment.file_name),
            uploaded_by=attachment.created_by_username or UNKNOWN_USER,
            uploaded_at=attachment.created_at,
            notes=attachment.notes,
        )


class AttachmentManager:
    """Attachments of one task, mirrored from the backend."""

    def __init__(
        self,
        backend: TaskBackend,
        task_id: int,
        prompter: Prompter,
        notifier: Notifier,
        refresh: Callable[[], Awaitable[bool]],
        is_closed: Callable[[], bool] = lambda: False,
    ):
        self._backend = backend
        self._task_id = task_id
        self._prompter = prompter
        self._notifier = notifier
        self._refresh = refresh
        self._is_closed = is_closed
        self._items: list[Attachment] = []

    @property
    def items(self) -> list[Attachment]:
        return list(self._items)

    def load(self, attachments: Iterable[BackendAttachment]) -> None:
        self._items = [Attachment.from_backend(a) for a in attachments]

    async def upload(
        self,
        file: Path | str | bytes,
        file_name: str | None = None,
        notes: str | None = None,
    ) -> Attachment | None:
        """Upload a file (path or raw bytes) and return the stored attachment."""
        if isinstance(file, bytes):
            if not file_name:
                raise ValueError("file_name is required when uploading raw bytes")
            content = file
        else:
            path = Path(file)
            content = await asyncio.to_thread(path.read_bytes)
            file_name = file_name or path.name

        try:
            created = await self._backend.upload_attachment(
                self._task_id, file_name, content, notes
            )
        except BackendError as exc:
            log.error("attachments.upload_failed", task_id=self._task_id, error=exc.message)
            if not self._is_closed():
                self._notifier.alert("Upload Failed", exc.message)
            return None

        attachment = Attachment.from_backend(created)
        self._items.append(attachment)
        log.info("attachments.uploaded", task_id=self._task_id, attachment_id=attachment.id)
        if not self._is_closed():
            self._notifier.success("Attachment uploaded successfully!")
            await self._refresh()
        return attachment

    async def delete(self, attachment_id: int) -> bool:
        if not await self._prompter.confirm("Delete", "Delete this attachment?"):
            return False

        try:
            await self._backend.delete_attachment(self._task_id, attachment_id)
        except BackendError as exc:
            log.error(
                "attachments.delete_failed",
                task_id=self._task_id,
                attachment_id=attachment_id,
                error=exc.message,
            )
            if not self._is_closed():
                self._notifier.alert("Delete Failed", exc.message)
            return False

        self._items = [a for a in self._items if a.id != attachment_id]
        log.info("attachments.deleted", task_id=self._task_id, attachment_id=attachment_id)
        if not self._is_closed():
            self._notifier.success("Attachment deleted successfully!")
            await self._refresh()
        return True

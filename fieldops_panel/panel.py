"""
Task detail panel: the controller behind one open task.

Owns the resource ledger, attachments, activity feed and internal notes of a
single task and sequences every backend call:
- fetch_detail: the only read; resynchronises all state with the backend
- save: notes first, then the ledger diff; the draft survives failures
- approve: missing-cost warning, forced save when dirty, then approval
- reject: required reason (given or prompted for), then rejection

One busy flag per panel stops a second action from starting while another is
in flight. Results that arrive after ``close()`` are dropped.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import structlog

from .activity import ActivityFeed
from .attachments import Attachment, AttachmentManager
from .client import TaskBackend
from .errors import (
    BackendError,
    InvalidTransitionError,
    MissingReasonError,
    PanelBusyError,
    PanelClosedError,
)
from .ledger import CreateLine, DeleteLine, LedgerOp, ResourceLedger, UpdateLine
from .models import ApprovalAction, LineKey, Persisted, ResourceLine, TaskStatus, TaskSummary
from .prompts import Notifier, Prompter
from .schemas import BackendTask, TaskUpdate

log = structlog.get_logger()

MISSING_COST_WARNING = "Some resources have no unit cost — totals may be inaccurate. Continue?"


class TaskDetailPanel:
    """Request-scoped state and workflow for one task."""

    def __init__(
        self,
        backend: TaskBackend,
        task_id: int,
        prompter: Prompter,
        notifier: Notifier,
    ):
        self._backend = backend
        self._prompter = prompter
        self._notifier = notifier
        self.task_id = task_id
        self.task: TaskSummary | None = None
        self.ledger = ResourceLedger()
        self.activity = ActivityFeed()
        self.attachments = AttachmentManager(
            backend,
            task_id,
            prompter,
            notifier,
            refresh=self._refresh,
            is_closed=lambda: self.closed,
        )
        self._notes = ""
        self._notes_dirty = False
        self.loading = False
        self.busy = False
        self.closed = False
        self._log = log.bind(task_id=task_id)

    # --- State ---

    @property
    def dirty(self) -> bool:
        return self._notes_dirty or self.ledger.dirty

    @property
    def notes(self) -> str:
        return self._notes

    def set_notes(self, text: str) -> None:
        self._notes = text
        self._notes_dirty = True

    @property
    def status(self) -> TaskStatus | None:
        return self.task.status if self.task else None

    def allowed_actions(self) -> list[ApprovalAction]:
        return self.task.status.allowed_actions() if self.task else []

    def close(self) -> None:
        self.closed = True
        self._log.debug("panel.closed")

    @asynccontextmanager
    async def _action(self, name: str) -> AsyncIterator[None]:
        if self.closed:
            raise PanelClosedError(f"Panel for task {self.task_id} is closed")
        if self.busy:
            raise PanelBusyError(f"Cannot {name} while another action is in progress")
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    # --- Fetch ---

    async def fetch_detail(self, keep_local_edits: bool = False) -> bool:
        """
        Load task fields, resources, attachments and activity from the backend.

        With ``keep_local_edits`` the unsaved draft and notes are rebased onto
        the fresh data instead of being replaced by it.
        """
        if self.closed:
            raise PanelClosedError(f"Panel for task {self.task_id} is closed")
        self.loading = True
        try:
            detail = await self._backend.get_task_detail(self.task_id)
        except BackendError as exc:
            self._log.error("panel.fetch_failed", error=exc.message)
            if not self.closed:
                self._notifier.alert("Error", f"Failed to load task details. {exc.message}")
            return False
        finally:
            self.loading = False

        if self.closed:
            self._log.debug("panel.fetch_dropped")
            return False

        self.task = TaskSummary.from_backend(detail)
        lines = [ResourceLine.from_backend(r) for r in detail.resources]
        if keep_local_edits:
            self.ledger.rebase(lines)
        else:
            self.ledger.load(lines)
        if not (keep_local_edits and self._notes_dirty):
            self._notes = self.task.internal_notes
            self._notes_dirty = False
        self.attachments.load(detail.attachments)
        self.activity.load(detail.activity_feed)
        self._log.info(
            "panel.loaded",
            status=self.task.status.value,
            resources=len(lines),
            attachments=len(detail.attachments),
        )
        return True

    async def _refresh(self) -> bool:
        if self.closed:
            return False
        return await self.fetch_detail(keep_local_edits=self.dirty)

    # --- Save ---

    async def save(self) -> bool:
        """Persist notes and the ledger draft. Returns False if anything failed."""
        async with self._action("save"):
            return await self._save()

    async def _save(self) -> bool:
        if not self.dirty:
            return True

        try:
            await self._backend.update_task(self.task_id, TaskUpdate(internal_notes=self._notes))
            self._notes_dirty = False
            ops = self.ledger.diff_for_commit()
            for op in ops:
                await self._apply(op)
        except BackendError as exc:
            self._log.error("panel.save_failed", error=exc.message)
            if not self.closed:
                self._notifier.alert("Save Failed", exc.message)
            return False

        self._log.info("panel.saved", operations=len(ops))
        if self.closed:
            return True
        self.ledger.dirty = False
        self._notifier.success("Changes saved successfully!")
        await self.fetch_detail()
        return True

    async def _apply(self, op: LedgerOp) -> None:
        if isinstance(op, UpdateLine):
            await self._backend.update_resource_line(self.task_id, op.line_id, op.body)
        elif isinstance(op, CreateLine):
            created = await self._backend.create_resource_line(self.task_id, op.body)
            # A retry after a later failure must not create the line twice
            self.ledger.mark_created(op.key, created.id)
        elif isinstance(op, DeleteLine):
            await self._backend.delete_resource_line(self.task_id, op.line_id)
            self.ledger.forget(Persisted(op.line_id))

    # --- Resource removal ---

    async def remove_resource(self, key: LineKey) -> bool:
        """
        Remove a resource line.

        Unsaved lines are dropped from the draft. Saved lines are deleted on
        the backend right away, after confirmation.
        """
        if not self.ledger.is_persisted(key):
            self.ledger.discard(key)
            return True

        async with self._action("delete resource"):
            if not await self._prompter.confirm("Delete", "Delete this resource?"):
                return False
            try:
                await self._backend.delete_resource_line(self.task_id, key.id)
            except BackendError as exc:
                self._log.error("panel.resource_delete_failed", line_id=key.id, error=exc.message)
                if not self.closed:
                    self._notifier.alert("Delete Failed", exc.message)
                return False

            self.ledger.forget(key)
            self._log.info("panel.resource_deleted", line_id=key.id)
            if not self.closed:
                self._notifier.success("Resource deleted successfully!")
                await self._refresh()
            return True

    # --- Attachments ---

    async def upload_attachment(
        self,
        file: Path | str | bytes,
        file_name: str | None = None,
        notes: str | None = None,
    ) -> Attachment | None:
        async with self._action("upload"):
            return await self.attachments.upload(file, file_name=file_name, notes=notes)

    async def delete_attachment(self, attachment_id: int) -> bool:
        async with self._action("delete attachment"):
            return await self.attachments.delete(attachment_id)

    # --- Approval ---

    def _check_transition(self, action: ApprovalAction) -> None:
        if self.task is None:
            raise InvalidTransitionError(f"Task {self.task_id} has not been loaded")
        self.task.status.transition(action)

    def _apply_status(self, updated: BackendTask) -> None:
        if self.task is not None and not self.closed:
            self.task.status = TaskStatus.from_backend(updated.status, updated.approval_status)

    async def approve(self) -> bool:
        """
        Approve the task.

        Warns about lines without a unit cost, saves pending edits first and
        only asks the backend to approve once the save succeeded.
        """
        async with self._action("approve"):
            self._check_transition(ApprovalAction.APPROVE)

            if self.ledger.has_missing_costs:
                if not await self._prompter.confirm("Warning", MISSING_COST_WARNING):
                    return False

            if self.dirty and not await self._save():
                self._log.warning("panel.approve_blocked_by_save")
                return False

            try:
                updated = await self._backend.approve_task(self.task_id)
            except BackendError as exc:
                self._log.error("panel.approve_failed", error=exc.message)
                if not self.closed:
                    self._notifier.alert("Approval Failed", exc.message)
                return False

            self._apply_status(updated)
            self._log.info("panel.approved")
            if not self.closed:
                self._notifier.success("Task approved successfully!")
                await self._refresh()
            return True

    async def reject(self, reason: Optional[str]) -> bool:
        """
        Reject the task with ``reason``.

        A missing or blank reason raises ``MissingReasonError`` before any
        backend call. Pending edits are not saved.
        """
        async with self._action("reject"):
            self._check_transition(ApprovalAction.REJECT)
            if reason is None or not reason.strip():
                raise MissingReasonError("A rejection reason is required")
            return await self._reject(reason.strip())

    async def reject_interactive(self) -> bool:
        """Ask the prompter for a reason until it is non-blank or cancelled, then reject."""
        async with self._action("reject"):
            self._check_transition(ApprovalAction.REJECT)
            reason = await self._ask_reason()
            if reason is None:
                return False
            return await self._reject(reason)

    async def _reject(self, reason: str) -> bool:
        try:
            updated = await self._backend.reject_task(self.task_id, reason)
        except BackendError as exc:
            self._log.error("panel.reject_failed", error=exc.message)
            if not self.closed:
                self._notifier.alert("Rejection Failed", exc.message)
            return False

        self._apply_status(updated)
        self._log.info("panel.rejected")
        if not self.closed:
            self._notifier.success("Task rejected successfully!")
            await self._refresh()
        return True

    async def _ask_reason(self) -> Optional[str]:
        while True:
            text = await self._prompter.ask_text("Reject Task", "Enter rejection reason:")
            if text is None:
                return None
            if text.strip():
                return text.strip()
            self._notifier.alert("Reject Task", "You need to provide a reason!")

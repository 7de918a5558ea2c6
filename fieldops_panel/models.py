"""
Domain types for an open task panel.

Status columns: Open → Approved | Rejected
- In Progress and Completed are reported by the backend but never entered
  from here.
- Approved and Rejected are terminal.

Resource line identity is a tagged union: ``Persisted`` for lines the backend
knows about, ``DraftKey`` for lines that only exist in this session.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from .costs import line_total
from .errors import InvalidTransitionError
from .schemas import ApprovalStatus, BackendResource, BackendTask, BackendTaskStatus


class ApprovalAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class TaskStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @classmethod
    def from_backend(cls, status: BackendTaskStatus, approval: ApprovalStatus) -> "TaskStatus":
        if approval == ApprovalStatus.APPROVED:
            return cls.APPROVED
        if approval == ApprovalStatus.REJECTED:
            return cls.REJECTED
        return _BACKEND_STATUS[status]

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.APPROVED, TaskStatus.REJECTED)

    def allowed_actions(self) -> list[ApprovalAction]:
        return list(VALID_TRANSITIONS.get(self, {}))

    def transition(self, action: ApprovalAction) -> "TaskStatus":
        allowed = VALID_TRANSITIONS.get(self, {})
        if action not in allowed:
            raise InvalidTransitionError(
                f"Cannot {action.value} a task in status '{self.value}'. "
                f"Allowed: {[a.value for a in allowed]}"
            )
        return allowed[action]


_BACKEND_STATUS = {
    BackendTaskStatus.DRAFT: TaskStatus.OPEN,
    BackendTaskStatus.IN_PROGRESS: TaskStatus.IN_PROGRESS,
    BackendTaskStatus.COMPLETED: TaskStatus.COMPLETED,
    BackendTaskStatus.CANCELED: TaskStatus.REJECTED,
}

VALID_TRANSITIONS: dict[TaskStatus, dict[ApprovalAction, TaskStatus]] = {
    TaskStatus.OPEN: {
        ApprovalAction.APPROVE: TaskStatus.APPROVED,
        ApprovalAction.REJECT: TaskStatus.REJECTED,
    },
}


# ---------------------------------------------------------------------------
# Resource line identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Persisted:
    """Line stored on the backend under a server-assigned id."""
    id: int

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class DraftKey:
    """Line created in this session and not yet saved."""
    temp_id: int

    def __str__(self) -> str:
        return f"new{-self.temp_id}"


LineKey = Union[Persisted, DraftKey]


def parse_line_key(text: str) -> LineKey:
    """Parse the ``str()`` form of a line key (``"7"`` or ``"new1"``)."""
    text = text.strip()
    if text.startswith("new"):
        return DraftKey(-int(text[3:]))
    return Persisted(int(text))


# ---------------------------------------------------------------------------
# Task data
# ---------------------------------------------------------------------------

@dataclass
class ResourceLine:
    key: LineKey
    resource_name: str = ""
    quantity: Decimal = Decimal(1)
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = field(default=None)

    def __post_init__(self) -> None:
        self.recompute()

    @property
    def is_draft(self) -> bool:
        return isinstance(self.key, DraftKey)

    def recompute(self) -> None:
        self.total_cost = line_total(self.quantity, self.unit_cost)

    def copy(self) -> "ResourceLine":
        return replace(self)

    @classmethod
    def from_backend(cls, resource: BackendResource) -> "ResourceLine":
        return cls(
            key=Persisted(resource.id),
            resource_name=resource.resource_name,
            quantity=resource.quantity,
            unit_cost=resource.unit_cost,
        )


@dataclass
class TaskSummary:
    """Task fields shown in the panel header; read-only apart from notes."""
    id: int
    status: TaskStatus
    task_name: str = ""
    internal_notes: str = ""
    deadline: Optional[date] = None
    location: str = ""
    employee_name: Optional[str] = None
    project_name: Optional[str] = None
    time_taken_minutes: Optional[int] = None

    @classmethod
    def from_backend(cls, task: BackendTask) -> "TaskSummary":
        return cls(
            id=task.id,
            status=TaskStatus.from_backend(task.status, task.approval_status),
            task_name=task.task_name,
            internal_notes=task.internal_notes or "",
            deadline=task.deadline,
            location=task.location or "",
            employee_name=task.employee_name,
            project_name=task.project_name,
            time_taken_minutes=task.time_taken_minutes,
        )

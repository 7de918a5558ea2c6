"""Pydantic schemas for the task backend's request and response payloads."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BackendTaskStatus(str, Enum):
    DRAFT = "Draft"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELED = "Canceled"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Task detail
# ---------------------------------------------------------------------------

class BackendResource(_Payload):
    id: int
    resource_name: str = ""
    quantity: Decimal = Decimal(0)
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None
    created_at: Optional[datetime] = None


class BackendAttachment(_Payload):
    id: int
    file_name: str
    file_url: str = ""
    notes: Optional[str] = None
    created_by_username: Optional[str] = None
    created_at: Optional[datetime] = None


class BackendActivity(_Payload):
    id: int
    action: str
    description: str = ""
    created_by_username: Optional[str] = None
    created_at: Optional[datetime] = None


class BackendTask(_Payload):
    id: int
    task_name: str = ""
    deadline: Optional[date] = None
    location: Optional[str] = None
    employee: Optional[int] = None
    employee_name: Optional[str] = None
    project: Optional[int] = None
    project_name: Optional[str] = None
    status: BackendTaskStatus = BackendTaskStatus.DRAFT
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    internal_notes: Optional[str] = None
    time_taken_minutes: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BackendTaskDetail(BackendTask):
    resources: List[BackendResource] = Field(default_factory=list)
    attachments: List[BackendAttachment] = Field(default_factory=list)
    activity_feed: List[BackendActivity] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class TaskUpdate(BaseModel):
    internal_notes: Optional[str] = None


class ResourceLineCreate(BaseModel):
    resource_name: str
    quantity: Decimal
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None


class ResourceLineUpdate(BaseModel):
    quantity: Decimal
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None


class TaskRejection(BaseModel):
    reason: str = Field(min_length=1)

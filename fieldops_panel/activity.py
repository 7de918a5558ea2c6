"""Read-only projection of the backend's task activity trail."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, Optional

from .schemas import BackendActivity

UNKNOWN_USER = "Unknown"


class ActivityType(str, Enum):
    CREATED = "Created"
    EDITED = "Edited"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    DELETED = "Deleted"


_ACTIONS = {
    "CREATED": ActivityType.CREATED,
    "UPDATED": ActivityType.EDITED,
    "APPROVED": ActivityType.APPROVED,
    "REJECTED": ActivityType.REJECTED,
    "DELETED": ActivityType.DELETED,
}


@dataclass(frozen=True)
class ActivityEntry:
    id: int
    type: ActivityType
    description: str
    performed_by: str
    timestamp: Optional[datetime]

    @classmethod
    def from_backend(cls, activity: BackendActivity) -> "ActivityEntry":
        return cls(
            id=activity.id,
            type=_ACTIONS.get(activity.action.upper(), ActivityType.EDITED),
            description=activity.description,
            performed_by=activity.created_by_username or UNKNOWN_USER,
            timestamp=activity.created_at,
        )


class ActivityFeed:
    """Entries exactly as the backend reported them, in backend order."""

    def __init__(self) -> None:
        self._entries: tuple[ActivityEntry, ...] = ()

    def load(self, activities: Iterable[BackendActivity]) -> None:
        self._entries = tuple(ActivityEntry.from_backend(a) for a in activities)

    @property
    def entries(self) -> tuple[ActivityEntry, ...]:
        return self._entries

    def latest(self, count: int = 10) -> list[ActivityEntry]:
        """Most recent first; entries without a timestamp sort last."""
        dated = sorted(
            self._entries,
            key=lambda e: (e.timestamp is not None, e.timestamp or datetime.min),
            reverse=True,
        )
        return dated[:max(count, 0)]

    def __iter__(self) -> Iterator[ActivityEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

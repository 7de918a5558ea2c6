"""Tests for the activity feed projection."""

from fieldops_panel.activity import ActivityEntry, ActivityFeed, ActivityType
from fieldops_panel.schemas import BackendActivity


def _activity(id, action, created_at=None, user="owner"):
    return BackendActivity.model_validate({
        "id": id,
        "action": action,
        "description": f"{action.lower()} event",
        "created_by_username": user,
        "created_at": created_at,
    })


def test_action_mapping():
    types = [
        ActivityEntry.from_backend(_activity(i, action)).type
        for i, action in enumerate(["CREATED", "UPDATED", "APPROVED", "REJECTED", "DELETED", "ARCHIVED"])
    ]
    assert types == [
        ActivityType.CREATED,
        ActivityType.EDITED,
        ActivityType.APPROVED,
        ActivityType.REJECTED,
        ActivityType.DELETED,
        ActivityType.EDITED,
    ]


def test_unknown_user():
    entry = ActivityEntry.from_backend(_activity(1, "CREATED", user=None))
    assert entry.performed_by == "Unknown"


def test_feed_is_replaced_on_load():
    feed = ActivityFeed()
    feed.load([_activity(1, "CREATED"), _activity(2, "UPDATED")])
    assert [e.id for e in feed] == [1, 2]
    feed.load([_activity(3, "APPROVED")])
    assert len(feed) == 1
    assert isinstance(feed.entries, tuple)


def test_latest_orders_newest_first():
    feed = ActivityFeed()
    feed.load([
        _activity(1, "CREATED", "2026-10-16T08:00:00Z"),
        _activity(2, "UPDATED", None),
        _activity(3, "APPROVED", "2026-10-17T08:00:00Z"),
    ])
    assert [e.id for e in feed.latest()] == [3, 1, 2]
    assert [e.id for e in feed.latest(1)] == [3]

"""
Exception types raised by the task panel core.

Backend failures are surfaced to the user verbatim; everything else is a
client-side guard that fires before any network call.
"""

from __future__ import annotations


class PanelError(Exception):
    """Base class for task panel errors."""


class BackendError(PanelError):
    """A backend operation failed (HTTP error, bad payload or transport error)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidTransitionError(PanelError):
    """Approval action requested from a status that does not allow it."""


class LineNotFoundError(PanelError, KeyError):
    """No resource line in the draft has the given key."""

    def __str__(self) -> str:
        return PanelError.__str__(self)


class InvalidLineValueError(PanelError, ValueError):
    """Negative quantity or unit cost."""


class MissingReasonError(PanelError, ValueError):
    """Rejection attempted without a reason."""


class PanelBusyError(PanelError):
    """Another network action is still in flight on this panel."""


class PanelClosedError(PanelError):
    """The panel was closed; its state is no longer updated."""

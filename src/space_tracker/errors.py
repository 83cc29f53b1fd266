"""Exceptions raised by the tracking core."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all space tracker errors."""


class ValidationError(TrackerError):
    """Raised when user supplied data is empty or malformed."""


class NotFoundError(TrackerError):
    """Raised when an operation targets an unknown space id."""

    def __init__(self, space_id: str) -> None:
        super().__init__(f"No space found for id={space_id}")
        self.space_id = space_id


class CollaboratorUnavailable(TrackerError):
    """Raised when an OS level lookup (focus, processes, apps) fails."""


class PersistenceFailure(TrackerError):
    """Raised when the database cannot be read or written."""

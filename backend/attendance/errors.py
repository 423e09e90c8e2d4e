"""
Domain exceptions. Each maps to exactly one HTTP status.
"""
from __future__ import annotations


class AttendanceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(AttendanceError):
    """Unknown meeting id."""
    status_code = 404


class ForbiddenError(AttendanceError):
    """Admin secret mismatch."""
    status_code = 403


class MeetingNotActiveError(ForbiddenError):
    """Admission attempted while the meeting is PENDING or ENDED."""

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Meeting is not active (status: {status})")


class ValidationFailedError(AttendanceError):
    """Missing, empty or malformed input."""
    status_code = 400


class InvalidTransitionError(AttendanceError):
    """Status change refused by the configured transition policy."""
    status_code = 409

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change status from {current} to {requested}")


class DuplicateAdmissionError(AttendanceError):
    """This device already checked in; clients treat it as success."""
    status_code = 409

    def __init__(self) -> None:
        super().__init__("Already submitted")

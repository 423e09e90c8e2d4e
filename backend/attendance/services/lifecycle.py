"""Meeting lifecycle: creation, public reads, admin-gated status changes and attendee listing.

The admin secret is a bearer capability handed out once by ``create_meeting``.
Every protected operation takes the presented secret and compares it against
the stored one in constant time; there is no rotation or expiry.
"""

from __future__ import annotations

import logging
import secrets
from typing import Dict, FrozenSet, List, Optional

from sqlmodel import Session

from attendance.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from attendance.models.attendee import Attendee
from attendance.models.meeting import Meeting, MeetingStatus
from attendance.repositories.attendees import AttendeesRepository
from attendance.repositories.meetings import MeetingsRepository

logger = logging.getLogger("attendance.lifecycle")

MAX_TITLE_LENGTH = 200

_ORDER: Dict[MeetingStatus, int] = {
    MeetingStatus.PENDING: 0,
    MeetingStatus.ACTIVE: 1,
    MeetingStatus.ENDED: 2,
}

_STRICT_NEXT: Dict[MeetingStatus, FrozenSet[MeetingStatus]] = {
    MeetingStatus.PENDING: frozenset({MeetingStatus.ACTIVE}),
    MeetingStatus.ACTIVE: frozenset({MeetingStatus.ENDED}),
    MeetingStatus.ENDED: frozenset(),
}


def is_transition_allowed(current: MeetingStatus, requested: MeetingStatus, policy: str = "strict") -> bool:
    if current == requested:
        return True
    if policy == "permissive":
        return True
    if policy == "monotonic":
        return _ORDER[requested] > _ORDER[current]
    if policy == "strict":
        return requested in _STRICT_NEXT[current]
    raise ValueError(f"Unknown transition policy: {policy}")


def parse_status(value: Optional[str]) -> MeetingStatus:
    try:
        return MeetingStatus((value or "").strip().upper())
    except ValueError:
        allowed = ", ".join(s.value for s in MeetingStatus)
        raise ValidationFailedError(f"Invalid status '{value}'. Expected one of: {allowed}")


def normalize_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationFailedError("Title is required")
    if len(cleaned) > MAX_TITLE_LENGTH:
        raise ValidationFailedError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
    return cleaned


def create_meeting(session: Session, title: Optional[str]) -> Meeting:
    meeting = Meeting(title=normalize_title(title), status=MeetingStatus.PENDING.value)
    meeting = MeetingsRepository(session).create(meeting)
    logger.info("Created meeting %s (%r)", meeting.id, meeting.title)
    return meeting


def get_meeting(session: Session, meeting_id: str) -> Meeting:
    meeting = MeetingsRepository(session).get(meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")
    return meeting


def authorize(meeting: Meeting, admin_secret: Optional[str]) -> None:
    """Raise ForbiddenError unless ``admin_secret`` matches the meeting's capability token."""
    presented = (admin_secret or "").encode("utf-8")
    if not presented or not secrets.compare_digest(presented, meeting.admin_secret.encode("utf-8")):
        logger.warning("Rejected admin secret for meeting %s", meeting.id)
        raise ForbiddenError("Invalid admin secret")


def get_authorized_meeting(session: Session, meeting_id: str, admin_secret: Optional[str]) -> Meeting:
    meeting = get_meeting(session, meeting_id)
    authorize(meeting, admin_secret)
    return meeting


def set_status(
    session: Session,
    meeting_id: str,
    admin_secret: Optional[str],
    new_status: Optional[str],
    policy: str = "strict",
) -> Meeting:
    meeting = get_authorized_meeting(session, meeting_id, admin_secret)
    requested = parse_status(new_status)
    current = MeetingStatus(meeting.status)

    if not is_transition_allowed(current, requested, policy):
        raise InvalidTransitionError(current.value, requested.value)
    if current == requested:
        return meeting

    meeting.status = requested.value
    meeting = MeetingsRepository(session).update(meeting)
    logger.info("Meeting %s status %s -> %s", meeting.id, current.value, requested.value)
    return meeting


def list_attendees(session: Session, meeting_id: str, admin_secret: Optional[str]) -> List[Attendee]:
    meeting = get_authorized_meeting(session, meeting_id, admin_secret)
    return AttendeesRepository(session).list_by_meeting(meeting.id)

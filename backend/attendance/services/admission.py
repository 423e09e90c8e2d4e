"""Attendee check-in.

Duplicate suppression relies on the (meeting_id, device_fingerprint) unique
constraint rather than a prior read, so two concurrent identical submissions
still produce a single row. The fingerprint is a client-generated token and
only a best-effort approximation of device identity.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session

from attendance.errors import (
    DuplicateAdmissionError,
    MeetingNotActiveError,
    ValidationFailedError,
)
from attendance.models.attendee import Attendee
from attendance.models.meeting import MeetingStatus
from attendance.repositories.attendees import AttendeesRepository, DuplicateAttendeeError
from attendance.services.lifecycle import get_meeting
from attendance.services.signature import SignatureLimits, decode_signature

logger = logging.getLogger("attendance.admission")

MAX_NAME_LENGTH = 200
MAX_FINGERPRINT_LENGTH = 256


def record_attendance(
    session: Session,
    meeting_id: str,
    name: Optional[str],
    signature: Optional[str],
    device_fingerprint: Optional[str],
    limits: SignatureLimits | None = None,
) -> Attendee:
    cleaned_name = (name or "").strip()
    if not cleaned_name:
        raise ValidationFailedError("Name is required")
    if len(cleaned_name) > MAX_NAME_LENGTH:
        raise ValidationFailedError(f"Name must be at most {MAX_NAME_LENGTH} characters")

    fingerprint = (device_fingerprint or "").strip()
    if not fingerprint:
        raise ValidationFailedError("Device identifier is required")
    if len(fingerprint) > MAX_FINGERPRINT_LENGTH:
        raise ValidationFailedError("Device identifier is too long")

    decode_signature(signature, limits)

    meeting = get_meeting(session, meeting_id)
    if meeting.status != MeetingStatus.ACTIVE.value:
        logger.info("Refused check-in for meeting %s in status %s", meeting.id, meeting.status)
        raise MeetingNotActiveError(meeting.status)

    attendee = Attendee(
        meeting_id=meeting.id,
        name=cleaned_name,
        signature=(signature or "").strip(),
        device_fingerprint=fingerprint,
    )
    try:
        attendee = AttendeesRepository(session).create(attendee)
    except DuplicateAttendeeError:
        logger.info("Duplicate check-in for meeting %s suppressed", meeting.id)
        raise DuplicateAdmissionError()

    logger.info("Checked in %r to meeting %s", attendee.name, meeting.id)
    return attendee

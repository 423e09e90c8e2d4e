from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from attendance.models.attendee import Attendee

# SQLite names the columns, other drivers name the constraint
_DEDUP_MARKERS = (
    "uq_attendee_meeting_device",
    "attendee.meeting_id, attendee.device_fingerprint",
)


class DuplicateAttendeeError(Exception):
    """Insert rejected by the (meeting_id, device_fingerprint) unique constraint."""


class AttendeesRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, attendee: Attendee) -> Attendee:
        self.session.add(attendee)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            message = str(exc.orig)
            if any(marker in message for marker in _DEDUP_MARKERS):
                raise DuplicateAttendeeError(str(exc.orig)) from exc
            raise
        self.session.refresh(attendee)
        return attendee

    def list_by_meeting(self, meeting_id: str) -> list[Attendee]:
        statement = (
            select(Attendee)
            .where(Attendee.meeting_id == meeting_id)
            .order_by(Attendee.timestamp.asc(), Attendee.id.asc())
        )
        return list(self.session.exec(statement))

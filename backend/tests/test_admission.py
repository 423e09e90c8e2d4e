"""
Tests for attendee check-in and duplicate suppression.
"""
import threading

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from attendance.errors import (
    DuplicateAdmissionError,
    MeetingNotActiveError,
    NotFoundError,
    ValidationFailedError,
)
from attendance.models.attendee import Attendee
from attendance.models.meeting import MeetingStatus
from attendance.repositories.attendees import AttendeesRepository, DuplicateAttendeeError
from attendance.services.admission import record_attendance


def _rows(session, meeting_id):
    return list(session.exec(select(Attendee).where(Attendee.meeting_id == meeting_id)))


@pytest.mark.unit
class TestRecordAttendance:

    def test_active_meeting_admits_attendee(self, session, make_meeting, signature):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        attendee = record_attendance(session, meeting.id, "  Alice ", signature, "dev1")
        assert attendee.name == "Alice"
        assert attendee.device_fingerprint == "dev1"
        assert attendee.signature == signature
        assert attendee.timestamp is not None
        assert len(_rows(session, meeting.id)) == 1

    @pytest.mark.parametrize("status", [MeetingStatus.PENDING, MeetingStatus.ENDED])
    def test_inactive_meeting_rejects_and_writes_nothing(self, session, make_meeting, signature, status):
        meeting = make_meeting(status=status)
        with pytest.raises(MeetingNotActiveError) as exc_info:
            record_attendance(session, meeting.id, "Alice", signature, "dev1")
        assert exc_info.value.status_code == 403
        assert exc_info.value.status == status.value
        assert _rows(session, meeting.id) == []

    def test_unknown_meeting_is_not_found(self, session, signature):
        with pytest.raises(NotFoundError):
            record_attendance(session, "missing", "Alice", signature, "dev1")

    def test_duplicate_device_is_suppressed(self, session, make_meeting, signature):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        record_attendance(session, meeting.id, "Alice", signature, "dev1")
        with pytest.raises(DuplicateAdmissionError) as exc_info:
            record_attendance(session, meeting.id, "Alice", signature, "dev1")
        assert exc_info.value.status_code == 409
        assert len(_rows(session, meeting.id)) == 1

    def test_duplicate_device_with_other_name_is_suppressed(self, session, make_meeting, signature):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        record_attendance(session, meeting.id, "Alice", signature, "dev1")
        with pytest.raises(DuplicateAdmissionError):
            record_attendance(session, meeting.id, "Someone Else", signature, "dev1")
        assert [a.name for a in _rows(session, meeting.id)] == ["Alice"]

    def test_duplicate_from_separate_session_is_suppressed(self, test_engine, make_meeting, signature):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        with Session(test_engine) as first, Session(test_engine) as second:
            record_attendance(first, meeting.id, "Alice", signature, "dev1")
            with pytest.raises(DuplicateAdmissionError):
                record_attendance(second, meeting.id, "Alice", signature, "dev1")
        with Session(test_engine) as check:
            assert len(_rows(check, meeting.id)) == 1

    def test_same_device_may_attend_other_meetings(self, session, make_meeting, signature):
        first = make_meeting(title="First", status=MeetingStatus.ACTIVE)
        second = make_meeting(title="Second", status=MeetingStatus.ACTIVE)
        record_attendance(session, first.id, "Alice", signature, "dev1")
        record_attendance(session, second.id, "Alice", signature, "dev1")
        assert len(_rows(session, first.id)) == 1
        assert len(_rows(session, second.id)) == 1

    def test_session_usable_after_duplicate(self, session, make_meeting, signature):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        record_attendance(session, meeting.id, "Alice", signature, "dev1")
        with pytest.raises(DuplicateAdmissionError):
            record_attendance(session, meeting.id, "Alice", signature, "dev1")
        record_attendance(session, meeting.id, "Bob", signature, "dev2")
        assert len(_rows(session, meeting.id)) == 2

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_blank_name_is_rejected(self, session, make_meeting, signature, name):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        with pytest.raises(ValidationFailedError, match="Name"):
            record_attendance(session, meeting.id, name, signature, "dev1")
        assert _rows(session, meeting.id) == []

    @pytest.mark.parametrize("fingerprint", [None, "", "  "])
    def test_missing_device_id_is_rejected(self, session, make_meeting, signature, fingerprint):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        with pytest.raises(ValidationFailedError, match="Device"):
            record_attendance(session, meeting.id, "Alice", signature, fingerprint)

    def test_blank_signature_is_rejected(self, session, make_meeting, blank_signature):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        with pytest.raises(ValidationFailedError):
            record_attendance(session, meeting.id, "Alice", blank_signature, "dev1")
        assert _rows(session, meeting.id) == []

    def test_missing_signature_is_rejected(self, session, make_meeting):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        with pytest.raises(ValidationFailedError):
            record_attendance(session, meeting.id, "Alice", "", "dev1")


@pytest.mark.unit
class TestConcurrentAdmission:

    def test_simultaneous_duplicates_yield_one_row(self, test_engine, make_meeting, signature):
        """Two requests racing for the same device: one row, one 409."""
        meeting_id = make_meeting(status=MeetingStatus.ACTIVE).id
        barrier = threading.Barrier(2)
        outcomes = []

        def submit():
            with Session(test_engine) as own:
                barrier.wait()
                try:
                    record_attendance(own, meeting_id, "Alice", signature, "dev1")
                    outcomes.append(201)
                except DuplicateAdmissionError as exc:
                    outcomes.append(exc.status_code)

        threads = [threading.Thread(target=submit) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert sorted(outcomes) == [201, 409]
        with Session(test_engine) as check:
            assert len(_rows(check, meeting_id)) == 1


@pytest.mark.unit
class TestAttendeesRepository:

    def test_unique_device_violation_is_a_duplicate(self, test_engine, make_meeting, make_attendee):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        make_attendee(meeting, "Alice", device="dev1")
        again = Attendee(meeting_id=meeting.id, name="Bob", signature="x", device_fingerprint="dev1")
        with Session(test_engine) as other:
            with pytest.raises(DuplicateAttendeeError):
                AttendeesRepository(other).create(again)

    def test_primary_key_collision_is_not_a_duplicate(self, test_engine, make_meeting, make_attendee):
        meeting = make_meeting(status=MeetingStatus.ACTIVE)
        existing = make_attendee(meeting, "Alice", device="dev1")
        clash = Attendee(id=existing.id, meeting_id=meeting.id, name="Bob", signature="x", device_fingerprint="dev2")
        with Session(test_engine) as other:
            with pytest.raises(IntegrityError):
                AttendeesRepository(other).create(clash)

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import BaseModel
from sqlmodel import Session

from attendance.config import Settings
from attendance.deps import get_session, get_settings
from attendance.models.attendee import Attendee
from attendance.models.meeting import Meeting, as_utc
from attendance.services import lifecycle
from attendance.services.export import export_attendees


router = APIRouter(prefix="/meetings", tags=["meetings"])


class CreateMeetingRequest(BaseModel):
    title: Optional[str] = None


class MeetingPublic(BaseModel):
    id: str
    title: str
    status: str
    created_at: datetime

    @classmethod
    def from_model(cls, meeting: Meeting) -> "MeetingPublic":
        return cls(id=meeting.id, title=meeting.title, status=meeting.status, created_at=as_utc(meeting.created_at))


class MeetingCreated(MeetingPublic):
    admin_secret: str


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None
    admin_secret: Optional[str] = None


class AttendeeRead(BaseModel):
    id: str
    name: str
    signature: str
    timestamp: datetime

    @classmethod
    def from_model(cls, attendee: Attendee) -> "AttendeeRead":
        return cls(id=attendee.id, name=attendee.name, signature=attendee.signature, timestamp=as_utc(attendee.timestamp))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_meeting(body: CreateMeetingRequest, session: Session = Depends(get_session)) -> MeetingCreated:
    meeting = lifecycle.create_meeting(session, body.title)
    # The only response that ever carries the secret
    return MeetingCreated(**MeetingPublic.from_model(meeting).model_dump(), admin_secret=meeting.admin_secret)


@router.get("/{meeting_id}")
def get_meeting(meeting_id: str, session: Session = Depends(get_session)) -> MeetingPublic:
    return MeetingPublic.from_model(lifecycle.get_meeting(session, meeting_id))


@router.get("/{meeting_id}/attendees")
def list_attendees(
    meeting_id: str,
    admin_secret: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
) -> List[AttendeeRead]:
    attendees = lifecycle.list_attendees(session, meeting_id, admin_secret)
    return [AttendeeRead.from_model(a) for a in attendees]


@router.post("/{meeting_id}/status")
def update_status(
    meeting_id: str,
    body: StatusUpdateRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> MeetingPublic:
    meeting = lifecycle.set_status(
        session, meeting_id, body.admin_secret, body.status, policy=settings.status_transitions
    )
    return MeetingPublic.from_model(meeting)


@router.get("/{meeting_id}/export/{export_type}")
def export_meeting(
    meeting_id: str,
    export_type: str,
    admin_secret: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> Response:
    result = export_attendees(
        session, meeting_id, admin_secret, export_type, embed_signatures=settings.export_embed_signatures
    )
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )

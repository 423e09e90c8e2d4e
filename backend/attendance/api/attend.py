from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlmodel import Session

from attendance.config import Settings
from attendance.deps import get_session, get_settings
from attendance.models.meeting import as_utc
from attendance.services.admission import record_attendance
from attendance.services.signature import SignatureLimits


router = APIRouter(tags=["attendance"])


class AttendRequest(BaseModel):
    meeting_id: str
    name: Optional[str] = None
    signature: Optional[str] = None
    ip_hash: Optional[str] = None  # client-persisted device token, not an IP


class AttendResponse(BaseModel):
    ok: bool
    id: str
    name: str
    timestamp: datetime


@router.post("/attend", status_code=status.HTTP_201_CREATED)
def attend(
    body: AttendRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AttendResponse:
    limits = SignatureLimits(
        min_bytes=settings.min_signature_bytes,
        max_bytes=settings.max_signature_bytes,
        min_side=settings.min_signature_side,
        max_pixels=settings.max_signature_pixels,
    )
    attendee = record_attendance(
        session,
        body.meeting_id,
        name=body.name,
        signature=body.signature,
        device_fingerprint=body.ip_hash,
        limits=limits,
    )
    return AttendResponse(ok=True, id=attendee.id, name=attendee.name, timestamp=as_utc(attendee.timestamp))

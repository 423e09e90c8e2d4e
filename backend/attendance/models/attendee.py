from __future__ import annotations

import uuid
from datetime import datetime
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from attendance.models.meeting import utcnow


class Attendee(SQLModel, table=True):
    # At most one check-in per device per meeting, enforced by the store itself
    __table_args__ = (
        UniqueConstraint("meeting_id", "device_fingerprint", name="uq_attendee_meeting_device"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    meeting_id: str = Field(index=True, foreign_key="meeting.id")
    name: str
    signature: str  # data URL, e.g. data:image/png;base64,...
    device_fingerprint: str
    timestamp: datetime = Field(default_factory=utcnow, index=True)

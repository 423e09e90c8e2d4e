from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field


class MeetingStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


def new_meeting_id() -> str:
    return str(uuid.uuid4())


def new_admin_secret() -> str:
    # 32 random bytes, url-safe; a bearer capability, never stored hashed or re-derivable
    return secrets.token_urlsafe(32)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Meeting(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("status IN ('PENDING', 'ACTIVE', 'ENDED')", name="ck_meeting_status"),
    )

    id: str = Field(default_factory=new_meeting_id, primary_key=True)
    title: str
    admin_secret: str = Field(default_factory=new_admin_secret)
    status: str = Field(default=MeetingStatus.PENDING.value)  # PENDING|ACTIVE|ENDED
    created_at: datetime = Field(default_factory=utcnow, index=True)

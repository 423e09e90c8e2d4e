"""
Pytest configuration and fixtures.
"""
import base64
import io
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw
from sqlmodel import Session

from attendance.config import Settings
from attendance.main import create_app
from attendance.models.attendee import Attendee
from attendance.models.base import create_db_engine, init_db
from attendance.models.meeting import Meeting, MeetingStatus


# ============================================
# SIGNATURE HELPERS
# ============================================

def png_data_url(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def drawn_signature(width: int = 300, height: int = 120) -> str:
    """A transparent canvas with a black stroke, like a browser signature pad produces."""
    img = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.line([(20, 80), (90, 30), (160, 90), (280, 40)], fill=(0, 0, 0, 255), width=4)
    return png_data_url(img)


# ============================================
# TEST CONFIGURATION
# ============================================

@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing every path at a per-test temp directory."""
    return Settings(
        data_dir=tmp_path / "data",
        logs_dir=tmp_path / "logs",
        database_path=tmp_path / "data" / "attendance.db",
        frontend_dist=tmp_path / "no-client-build",
        status_transitions="strict",
    )


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest.fixture
def test_engine(test_settings):
    """SQLite file database with the schema created."""
    test_settings.ensure_dirs()
    engine = create_db_engine(test_settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(test_engine):
    with Session(test_engine) as s:
        yield s


# ============================================
# TEST CLIENT FIXTURES
# ============================================

@pytest.fixture
def test_app(test_settings, test_engine):
    return create_app(settings=test_settings, engine=test_engine)


@pytest.fixture
def test_client(test_app):
    """Client with startup/shutdown events run."""
    with TestClient(test_app) as client:
        yield client


# ============================================
# DOMAIN FIXTURES
# ============================================

@pytest.fixture
def signature():
    return drawn_signature()


@pytest.fixture
def blank_signature():
    return png_data_url(Image.new("RGBA", (300, 120), (0, 0, 0, 0)))


@pytest.fixture
def make_meeting(session):
    """Insert a meeting directly in the given status."""
    def _make(title: str = "Standup", status: MeetingStatus = MeetingStatus.PENDING) -> Meeting:
        meeting = Meeting(title=title, status=status.value)
        session.add(meeting)
        session.commit()
        session.refresh(meeting)
        return meeting
    return _make


@pytest.fixture
def make_attendee(session, signature):
    """Insert an attendee row directly, bypassing admission checks."""
    base = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def _make(meeting: Meeting, name: str, minutes: int = 0, device: str | None = None, sig: str | None = None) -> Attendee:
        attendee = Attendee(
            meeting_id=meeting.id,
            name=name,
            signature=sig if sig is not None else signature,
            device_fingerprint=device or f"device-{name.lower()}",
            timestamp=base + timedelta(minutes=minutes),
        )
        session.add(attendee)
        session.commit()
        session.refresh(attendee)
        return attendee
    return _make

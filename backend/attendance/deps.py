from __future__ import annotations

from typing import Iterator

from fastapi import Request
from sqlmodel import Session

from attendance.config import Settings


def get_session(request: Request) -> Iterator[Session]:
    with Session(request.app.state.engine) as session:
        yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

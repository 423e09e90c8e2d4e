from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from attendance.config import Settings

# Table classes register themselves on SQLModel.metadata when imported
from attendance.models.meeting import Meeting  # noqa: F401
from attendance.models.attendee import Attendee  # noqa: F401


def create_db_engine(settings: Settings) -> Engine:
    engine = create_engine(
        f"sqlite:///{settings.database_path}", connect_args={"check_same_thread": False}
    )

    # SQLite only enforces FOREIGN KEY clauses when asked to, per connection
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    # Enable WAL
    with engine.begin() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
        conn.exec_driver_sql("PRAGMA synchronous=NORMAL;")
    SQLModel.metadata.create_all(engine)

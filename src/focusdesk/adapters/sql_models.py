"""SQLAlchemy schema and engine setup."""

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Store naive UTC, hand back aware UTC (SQLite drops tzinfo)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class TaskRow(Base):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(32), nullable=False)
    title = Column(Text, nullable=False)
    progress = Column(String(16), nullable=False, default="Not Started")
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(UTCDateTime, nullable=True)
    due_date = Column(UTCDateTime, nullable=True)
    duration = Column(Integer, nullable=False, default=0)
    pomodoro_count = Column(Integer, nullable=False, default=0)
    # Google Calendar event id; NULL for tasks created by hand
    remote_event_id = Column(String(1024), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        # Spans deleted rows too: an event maps to at most one task, ever
        UniqueConstraint("owner_id", "remote_event_id", name="uq_tasks_owner_remote_event"),
        Index("ix_tasks_owner_deleted_due", "owner_id", "deleted", "due_date"),
    )


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    google_id = Column(String(255), nullable=False, unique=True)
    email = Column(String(320), nullable=False, default="")
    access_token = Column(Text, nullable=False, default="")
    refresh_token = Column(Text, nullable=False, default="")
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)


class Database:
    """Engine plus session factory; creates tables on first use."""

    def __init__(self, url: str):
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False, "timeout": 30}
            db_file = url.removeprefix("sqlite:///")
            if db_file and db_file != url and ":memory:" not in db_file:
                Path(db_file).parent.mkdir(parents=True, exist_ok=True)
        self.url = url
        self.engine = create_engine(url, connect_args=connect_args)
        self.session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database ready: {self.engine.url.render_as_string(hide_password=True)}")

    def dispose(self) -> None:
        self.engine.dispose()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

"""SQL document store for calendar events and conversation records.

Both tables are partitioned by ``client_id``: every query filters on it, and
event ids are only unique within one client.  Any SQLAlchemy URL works;
SQLite is the default for local use and ``sqlite://`` gives an in-memory
store for tests.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from minato.services.metrics import metrics

logger = logging.getLogger(__name__)

Base = declarative_base()

# Longest client id the tables (and the chat API) accept.
CLIENT_ID_MAX_LENGTH = 128

EVENT_FIELDS = (
    "title",
    "date",
    "start_time",
    "end_time",
    "location",
    "description",
    "collaborators",
    "reminders",
    "all_day",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DuplicateEventError(Exception):
    """Raised when an event id is already taken for the client."""


class CalendarEventRow(Base):
    __tablename__ = "calendar_events"
    __table_args__ = (UniqueConstraint("client_id", "event_id", name="uq_client_event"),)

    pk = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String(CLIENT_ID_MAX_LENGTH), nullable=False, index=True)
    event_id = Column(String(64), nullable=False)
    title = Column(String(500), nullable=False)
    date = Column(String(10), nullable=False)
    start_time = Column(String(5))
    end_time = Column(String(5))
    location = Column(Text, default="")
    description = Column(Text, default="")
    collaborators = Column(JSON, default=list)
    reminders = Column(JSON, default=list)
    all_day = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_record(self) -> dict[str, Any]:
        record = {"id": self.event_id}
        for name in EVENT_FIELDS:
            record[name] = getattr(self, name)
        return record


class ConversationRow(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String(CLIENT_ID_MAX_LENGTH), nullable=False, index=True)
    messages = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "messages": list(self.messages),
            "created_at": self.created_at,
        }


def create_document_engine(url: str):
    """Create a SQLAlchemy engine; in-memory SQLite shares one connection."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


class DocumentStore:
    """Calendar events and conversation records, keyed by client."""

    def __init__(self, engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str) -> DocumentStore:
        store = cls(create_document_engine(url))
        store.create_tables()
        return store

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        db: Session = self._session_factory()
        try:
            with metrics.track("documents", operation):
                yield db
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ── Calendar events ──────────────────────────────────────────────

    def _event_row(self, db: Session, client_id: str, event_id: str) -> CalendarEventRow | None:
        return (
            db.query(CalendarEventRow)
            .filter_by(client_id=client_id, event_id=event_id)
            .one_or_none()
        )

    def list_events(self, client_id: str) -> list[dict[str, Any]]:
        with self._session("list_events") as db:
            rows = (
                db.query(CalendarEventRow)
                .filter_by(client_id=client_id)
                .order_by(CalendarEventRow.date, CalendarEventRow.start_time, CalendarEventRow.pk)
                .all()
            )
            return [row.to_record() for row in rows]

    def get_event(self, client_id: str, event_id: str) -> dict[str, Any] | None:
        with self._session("get_event") as db:
            row = self._event_row(db, client_id, event_id)
            return row.to_record() if row else None

    def insert_event(self, client_id: str, record: dict[str, Any]) -> str:
        """Insert an event record.  Raises ``DuplicateEventError`` on id clash."""
        row = CalendarEventRow(
            client_id=client_id,
            event_id=record["id"],
            **{name: record.get(name) for name in EVENT_FIELDS},
        )
        try:
            with self._session("insert_event") as db:
                db.add(row)
        except IntegrityError as exc:
            raise DuplicateEventError(
                f"Event with id {record['id']} already exists."
            ) from exc
        logger.debug("Inserted event %s for client %s", record["id"], client_id)
        return record["id"]

    def replace_event(self, client_id: str, event_id: str, record: dict[str, Any]) -> bool:
        """Overwrite the stored fields of an event.  Returns ``False`` if missing."""
        with self._session("replace_event") as db:
            row = self._event_row(db, client_id, event_id)
            if row is None:
                return False
            for name in EVENT_FIELDS:
                setattr(row, name, record.get(name))
            return True

    def delete_event(self, client_id: str, event_id: str) -> bool:
        with self._session("delete_event") as db:
            row = self._event_row(db, client_id, event_id)
            if row is None:
                return False
            db.delete(row)
            return True

    # ── Conversations ────────────────────────────────────────────────

    def insert_conversation(self, client_id: str, messages: list[dict[str, str]]) -> int:
        row = ConversationRow(client_id=client_id, messages=list(messages))
        with self._session("insert_conversation") as db:
            db.add(row)
            db.flush()
            conversation_id = row.id
        logger.info("Conversation %s stored for client %s", conversation_id, client_id)
        return conversation_id

    def list_conversations(self, client_id: str) -> list[dict[str, Any]]:
        with self._session("list_conversations") as db:
            rows = (
                db.query(ConversationRow)
                .filter_by(client_id=client_id)
                .order_by(ConversationRow.id)
                .all()
            )
            return [row.to_record() for row in rows]

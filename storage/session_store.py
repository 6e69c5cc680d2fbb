"""
Session Store - Durable Conversation Log

Persists chat sessions and their messages with SQLAlchemy. Messages are
append-only: each gets the next position in its session and is never
edited or deleted, so replaying them in position order rebuilds the exact
conversation window the model saw.

Message content is stored as the Gemini ``parts`` list (JSON), the same
structure the gateway sends, so no translation happens on reload.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL, GREETING_MESSAGE
from core.errors import SessionBusyError, SessionNotFoundError
from core.models import Role, SessionCategory

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# TABLES
# ============================================================================

class SessionRecord(Base):
    """Chat session table"""
    __tablename__ = "ai_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    category = Column(String(20), nullable=False, index=True)
    title = Column(String(200), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=True, index=True)

    messages = relationship(
        "MessageRecord",
        back_populates="session",
        order_by="MessageRecord.position",
    )

    def __repr__(self):
        return f"<SessionRecord {self.id} {self.category}>"


class MessageRecord(Base):
    """Chat message table"""
    __tablename__ = "ai_messages"
    __table_args__ = (UniqueConstraint("session_id", "position", name="uq_message_position"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(36), ForeignKey("ai_sessions.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    role = Column(String(10), nullable=False)
    content = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    session = relationship("SessionRecord", back_populates="messages")


# ============================================================================
# DOMAIN OBJECTS
# ============================================================================

@dataclass
class StoredMessage:
    """A persisted message. ``parts`` is the Gemini parts list."""
    role: Role
    parts: List[Dict[str, Any]]
    position: int
    created_at: Optional[datetime] = None

    def to_content(self) -> Dict[str, Any]:
        return {"role": self.role.value, "parts": self.parts}


@dataclass
class ChatSession:
    """A conversation session with its ordered messages."""
    id: str
    category: SessionCategory
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    messages: List[StoredMessage] = field(default_factory=list)

    @property
    def last_activity(self) -> Optional[datetime]:
        return self.updated_at or self.created_at


def _to_message(record: MessageRecord) -> StoredMessage:
    return StoredMessage(
        role=Role(record.role),
        parts=record.content,
        position=record.position,
        created_at=record.created_at,
    )


def _to_session(record: SessionRecord, with_messages: bool = True) -> ChatSession:
    return ChatSession(
        id=record.id,
        category=SessionCategory(record.category),
        title=record.title,
        created_at=record.created_at,
        updated_at=record.updated_at,
        messages=[_to_message(m) for m in record.messages] if with_messages else [],
    )


# ============================================================================
# SESSION STORE
# ============================================================================

class SessionStore:
    """
    Append-only message log per session.

    Usage:
        store = SessionStore("sqlite:///portal_agent.db")
        session = store.create(SessionCategory.ACADEMIC)
        store.append_message(session.id, Role.USER, [{"text": "Hello"}])
        history = store.load_history(session.id)
    """

    def __init__(self, database_url: str = DATABASE_URL, engine=None):
        """
        Initialize the store and create tables if needed.

        Args:
            database_url: SQLAlchemy URL; "sqlite://" gives an in-memory store
            engine: Pre-built engine (overrides database_url)
        """
        if engine is None:
            engine = self._build_engine(database_url)
        self.engine = engine
        self._sessionmaker = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(engine)
        logger.info(f"✅ SessionStore ready ({engine.url.drivername})")

    @staticmethod
    def _build_engine(database_url: str):
        if database_url.startswith("sqlite"):
            kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise each thread sees an empty database
                kwargs["poolclass"] = StaticPool
            else:
                path = database_url.replace("sqlite:///", "", 1)
                _ensure_parent_dir(path)
            return create_engine(database_url, **kwargs)
        return create_engine(database_url, pool_pre_ping=True)

    @contextmanager
    def _transaction(self):
        db = self._sessionmaker()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _get_record(self, db, session_id: str) -> SessionRecord:
        record = db.get(SessionRecord, session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return record

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, category: SessionCategory, greeting: Optional[str] = GREETING_MESSAGE) -> ChatSession:
        """
        Create a session seeded with the persona greeting as a model message.

        Args:
            category: Persona the session belongs to
            greeting: Greeting text; None creates an empty session
        """
        category = SessionCategory(category)
        with self._transaction() as db:
            record = SessionRecord(id=str(uuid.uuid4()), category=category.value)
            db.add(record)
            if greeting:
                db.add(MessageRecord(
                    session_id=record.id,
                    position=0,
                    role=Role.MODEL.value,
                    content=[{"text": greeting}],
                ))
            db.flush()
            db.refresh(record)
            session = _to_session(record)

        logger.info(f"🆕 Created {category.value} session {session.id}")
        return session

    def append_message(self, session_id: str, role: Role, parts: List[Dict[str, Any]]) -> StoredMessage:
        """
        Append one message at the end of the session's log.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        role = Role(role)
        with self._transaction() as db:
            record = self._get_record(db, session_id)
            last = db.execute(
                select(func.max(MessageRecord.position)).where(MessageRecord.session_id == session_id)
            ).scalar()
            message = MessageRecord(
                session_id=session_id,
                position=0 if last is None else last + 1,
                role=role.value,
                content=parts,
            )
            db.add(message)
            record.updated_at = _utcnow()
            db.flush()
            stored = _to_message(message)

        logger.debug(f"💾 {session_id} #{stored.position} {role.value}")
        return stored

    def set_title(self, session_id: str, title: str) -> None:
        with self._transaction() as db:
            record = self._get_record(db, session_id)
            record.title = title
        logger.info(f"🏷️  Session {session_id} titled '{title}'")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_history(self, session_id: str) -> List[StoredMessage]:
        """Messages of the session in append order."""
        with self._transaction() as db:
            self._get_record(db, session_id)
            rows = db.execute(
                select(MessageRecord)
                .where(MessageRecord.session_id == session_id)
                .order_by(MessageRecord.position)
            ).scalars().all()
            return [_to_message(r) for r in rows]

    def load_window(self, session_id: str) -> List[Dict[str, Any]]:
        """The session history as model contents, ready for the gateway."""
        return [m.to_content() for m in self.load_history(session_id)]

    def get_session(self, session_id: str) -> ChatSession:
        with self._transaction() as db:
            return _to_session(self._get_record(db, session_id))

    def has_title(self, session_id: str) -> bool:
        with self._transaction() as db:
            return bool(self._get_record(db, session_id).title)

    def list_sessions(self, category: SessionCategory, with_messages: bool = False) -> List[ChatSession]:
        """Sessions of one category, most recently active first."""
        category = SessionCategory(category)
        with self._transaction() as db:
            records = db.execute(
                select(SessionRecord).where(SessionRecord.category == category.value)
            ).scalars().all()
            sessions = [_to_session(r, with_messages=with_messages) for r in records]

        return sorted(sessions, key=lambda s: s.last_activity, reverse=True)


def _ensure_parent_dir(path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


# ============================================================================
# SINGLE WRITER PER SESSION
# ============================================================================

class SessionLockRegistry:
    """
    At most one agent loop per session at a time.

    Acquisition never waits: a second request on a busy session gets
    SessionBusyError straight away.
    """

    def __init__(self):
        self._mutex = threading.Lock()
        self._busy = set()

    def acquire(self, session_id: str) -> None:
        """
        Mark the session busy.

        Raises:
            SessionBusyError: If another request holds it
        """
        with self._mutex:
            if session_id in self._busy:
                raise SessionBusyError(session_id)
            self._busy.add(session_id)

    def release(self, session_id: str) -> None:
        with self._mutex:
            self._busy.discard(session_id)

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        self.acquire(session_id)
        try:
            yield
        finally:
            self.release(session_id)

    def is_busy(self, session_id: str) -> bool:
        with self._mutex:
            return session_id in self._busy

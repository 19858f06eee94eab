"""
Relational backend: users, sessions and one JSON project document per user.

Accepts any SQLAlchemy URL (Postgres in production, SQLite for development and tests).
"""

from __future__ import annotations

import time
from typing import Any, Optional

from sqlalchemy import JSON, Column, Integer, String, create_engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from errors import Conflict

from .auth_state import SessionRecord, SessionRepository, UserRecord, UserRepository
from .interfaces import DocumentStore

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    created_at = Column(Integer, nullable=False)


class SessionRow(Base):
    __tablename__ = "sessions"

    session_id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    created_at = Column(Integer, nullable=False)
    expires_at = Column(Integer, nullable=False, index=True)


class ProjectDocumentRow(Base):
    __tablename__ = "user_projects"

    user_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(Integer, nullable=False)


class SqlDbClient(UserRepository, SessionRepository, DocumentStore):
    """
    SQLAlchemy-backed implementation of the user, session and document repositories.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        connect_args: dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            # Requests are served from a thread pool.
            connect_args["check_same_thread"] = False
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
            connect_args=connect_args,
        )
        self.Session = sessionmaker(bind=self.engine, class_=Session, expire_on_commit=False, future=True)
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # -- users -------------------------------------------------------------

    @staticmethod
    def _to_user_record(row: UserRow) -> UserRecord:
        return UserRecord(
            id=row.id,
            email=row.email,
            password_hash=row.password_hash,
            display_name=row.display_name,
            created_at=row.created_at,
        )

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.execute(select(UserRow).where(UserRow.email == email)).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def create_user(self, record: UserRecord) -> None:
        with self.Session() as session:
            if session.execute(select(UserRow.id).where(UserRow.email == record.email)).first():
                raise Conflict("Email already registered")
            session.add(
                UserRow(
                    id=record.id,
                    email=record.email,
                    password_hash=record.password_hash,
                    display_name=record.display_name,
                    created_at=record.created_at,
                )
            )
            try:
                session.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent registration of the same email.
                session.rollback()
                raise Conflict("Email already registered") from e

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            row.password_hash = password_hash
            session.commit()

    def set_display_name(self, user_id: str, display_name: str | None) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            row.display_name = display_name
            session.commit()

    # -- sessions ----------------------------------------------------------

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        with self.Session() as session:
            row = session.get(SessionRow, session_id)
            if not row:
                return None
            record = SessionRecord(user_id=row.user_id, created_at=row.created_at, expires_at=row.expires_at)
            if record.is_expired():
                session.delete(row)
                session.commit()
                return None
            return record

    def put_session(self, session_id: str, record: SessionRecord) -> None:
        with self.Session() as session:
            # Expired rows are only otherwise removed when their cookie comes back.
            self._delete_expired(session)
            row = session.get(SessionRow, session_id)
            if row:
                row.user_id = record.user_id
                row.created_at = record.created_at
                row.expires_at = record.expires_at
            else:
                session.add(
                    SessionRow(
                        session_id=session_id,
                        user_id=record.user_id,
                        created_at=record.created_at,
                        expires_at=record.expires_at,
                    )
                )
            session.commit()

    def delete_session(self, session_id: str) -> None:
        with self.Session() as session:
            session.execute(delete(SessionRow).where(SessionRow.session_id == session_id))
            session.commit()

    @staticmethod
    def _delete_expired(session: Session) -> int:
        result = session.execute(delete(SessionRow).where(SessionRow.expires_at <= int(time.time())))
        return result.rowcount or 0

    def delete_expired_sessions(self) -> int:
        with self.Session() as session:
            removed = self._delete_expired(session)
            session.commit()
            return removed

    # -- project documents -------------------------------------------------

    def read(self, user_id: str) -> list[Any]:
        with self.Session() as session:
            row = session.get(ProjectDocumentRow, user_id)
            if not row or row.data is None:
                return []
            return list(row.data)

    def replace(self, user_id: str, document: list[Any]) -> None:
        with self.Session() as session:
            row = session.get(ProjectDocumentRow, user_id)
            if row:
                row.data = document
                row.updated_at = int(time.time())
            else:
                session.add(ProjectDocumentRow(user_id=user_id, data=document, updated_at=int(time.time())))
            session.commit()

    def create_empty(self, user_id: str) -> None:
        with self.Session() as session:
            if session.get(ProjectDocumentRow, user_id):
                return
            session.add(ProjectDocumentRow(user_id=user_id, data=[], updated_at=int(time.time())))
            try:
                session.commit()
            except IntegrityError:
                # Another request created it first.
                session.rollback()

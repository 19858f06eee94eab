from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from errors import Internal

from .auth_state import SessionRecord, SessionRepository, UserRecord, UserRepository
from .interfaces import DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures of the backing file or database, as opposed to domain errors like Conflict.
STORAGE_ERRORS = (OSError, ValueError, SQLAlchemyError)


async def _in_thread(fn: Callable[..., T], *args: Any) -> T:
    try:
        return await asyncio.to_thread(fn, *args)
    except STORAGE_ERRORS as e:
        logger.exception("STORAGE: %s failed", getattr(fn, "__qualname__", fn))
        raise Internal() from e


class AsyncAuthRepository:
    """
    Async facade over a user repository and a session repository.
    Uses asyncio.to_thread to avoid blocking the event loop on file/database I/O.
    """

    def __init__(self, users: UserRepository, sessions: SessionRepository) -> None:
        self._users = users
        self._sessions = sessions

    async def get_user(self, user_id: str) -> UserRecord | None:
        return await _in_thread(self._users.get_user, user_id)

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        return await _in_thread(self._users.get_user_by_email, email)

    async def create_user(self, record: UserRecord) -> None:
        await _in_thread(self._users.create_user, record)

    async def set_password_hash(self, user_id: str, password_hash: str) -> None:
        await _in_thread(self._users.set_password_hash, user_id, password_hash)

    async def set_display_name(self, user_id: str, display_name: str | None) -> None:
        await _in_thread(self._users.set_display_name, user_id, display_name)

    async def get_session(self, session_id: str) -> SessionRecord | None:
        return await _in_thread(self._sessions.get_session, session_id)

    async def put_session(self, session_id: str, record: SessionRecord) -> None:
        await _in_thread(self._sessions.put_session, session_id, record)

    async def delete_session(self, session_id: str) -> None:
        await _in_thread(self._sessions.delete_session, session_id)


class AsyncProjectRepository:
    """
    Async facade over whichever DocumentStore the deployment selected.

    Storage failures surface as errors.Internal so callers see a generic 500.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def read(self, user_id: str) -> list[Any]:
        return await _in_thread(self._store.read, user_id)

    async def replace(self, user_id: str, document: list[Any]) -> None:
        await _in_thread(self._store.replace, user_id, document)

    async def create_empty(self, user_id: str) -> None:
        await _in_thread(self._store.create_empty, user_id)

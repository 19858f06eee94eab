from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel

from errors import Conflict

from .disk_store import DiskJsonDocumentStore

# The one user id every session maps to in single-user (file) mode.
LOCAL_USER_ID = "local"


class UserRecord(BaseModel):
    id: str
    email: str
    password_hash: str
    display_name: str | None = None
    created_at: int


class SessionRecord(BaseModel):
    user_id: str
    created_at: int
    expires_at: int

    def is_expired(self, now: int | None = None) -> bool:
        ts = int(time.time()) if now is None else int(now)
        return ts >= int(self.expires_at)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, passed explicitly into every service call."""

    user_id: str
    email: str | None = None
    display_name: str | None = None

    def as_public_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "email": self.email, "displayName": self.display_name}


class UserRepository(Protocol):
    def get_user(self, user_id: str) -> UserRecord | None:
        ...

    def get_user_by_email(self, email: str) -> UserRecord | None:
        ...

    def create_user(self, record: UserRecord) -> None:
        """Raises Conflict if the email is already registered."""
        ...

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        ...

    def set_display_name(self, user_id: str, display_name: str | None) -> None:
        ...


class SessionRepository(Protocol):
    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a live session; expired ones are deleted and reported as None."""
        ...

    def put_session(self, session_id: str, record: SessionRecord) -> None:
        ...

    def delete_session(self, session_id: str) -> None:
        ...


class DiskSessionRepository(SessionRepository):
    """
    Sessions kept in data/auth/sessions.json as { "<session_id>": {...} }.
    """

    def __init__(self, *, auth_dir: Path):
        self._sessions = DiskJsonDocumentStore(auth_dir / "sessions.json")
        self._drop_expired()

    @staticmethod
    def _clean(data: dict[str, Any]) -> None:
        now = int(time.time())
        for sid, rec in list(data.items()):
            if not isinstance(rec, dict):
                data.pop(sid, None)
                continue
            exp = rec.get("expires_at")
            if not isinstance(exp, int) or now >= exp:
                data.pop(sid, None)

    def _drop_expired(self) -> None:
        self._sessions.update(self._clean)

    def get_session(self, session_id: str) -> SessionRecord | None:
        data = self._sessions.load()
        rec = data.get(session_id)
        if not isinstance(rec, dict):
            return None
        record = SessionRecord.model_validate(rec)
        if record.is_expired():
            # expire eagerly
            self.delete_session(session_id)
            return None
        return record

    def put_session(self, session_id: str, record: SessionRecord) -> None:
        validated = record.model_dump(mode="json")

        def _put(data: dict[str, Any]) -> None:
            self._clean(data)
            data[session_id] = validated

        self._sessions.update(_put)

    def delete_session(self, session_id: str) -> None:
        self._sessions.update(lambda data: data.pop(session_id, None))


class DiskAccountRepository(UserRepository):
    """
    The single account of single-user mode, kept in data/auth/account.json.

    Whatever id a caller asks for, there is only LOCAL_USER_ID.
    """

    def __init__(self, *, auth_dir: Path):
        self._account = DiskJsonDocumentStore(auth_dir / "account.json")

    def _load(self) -> UserRecord | None:
        rec = self._account.load().get("user")
        if not isinstance(rec, dict):
            return None
        return UserRecord.model_validate(rec)

    def get_user(self, user_id: str) -> UserRecord | None:
        user = self._load()
        if user is None or user.id != user_id:
            return None
        return user

    def get_user_by_email(self, email: str) -> UserRecord | None:
        user = self._load()
        if user is None or user.email != email:
            return None
        return user

    def create_user(self, record: UserRecord) -> None:
        stored = record.model_copy(update={"id": LOCAL_USER_ID}).model_dump(mode="json")

        def _create(doc: dict[str, Any]) -> None:
            existing = doc.get("user")
            if isinstance(existing, dict):
                if existing.get("email") == record.email:
                    raise Conflict("Email already registered")
                raise Conflict("An account already exists in single-user mode")
            doc["user"] = stored

        self._account.update(_create)

    def _patch(self, user_id: str, **fields: Any) -> None:
        def _apply(doc: dict[str, Any]) -> None:
            user = doc.get("user")
            if isinstance(user, dict) and user.get("id") == user_id:
                user.update(fields)

        self._account.update(_apply)

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        self._patch(user_id, password_hash=password_hash)

    def set_display_name(self, user_id: str, display_name: str | None) -> None:
        self._patch(user_id, display_name=display_name)

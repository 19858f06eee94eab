"""
Registration, login, sessions and profile edits.

IdentityService is the multi-tenant implementation backed by a user table.
SingleUserIdentityService is the development-only variant used with the file
store: one account with a fixed id, read back from the account file.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
import time
from dataclasses import dataclass
from typing import Any

from errors import AuthRequired, Conflict, InvalidInput, Unauthorized
from passwords import PasswordHasher, check_new_password
from persistence.auth_state import LOCAL_USER_ID, Identity, SessionRecord, UserRecord
from persistence.repositories import AsyncAuthRepository, AsyncProjectRepository

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")
MAX_DISPLAY_NAME_LENGTH = 200


@dataclass(frozen=True)
class IssuedSession:
    session_id: str
    identity: Identity


def normalize_email(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
        raise InvalidInput("A valid email is required")
    return value.strip().lower()


def clean_display_name(value: Any) -> str | None:
    """None or blank clears the name."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput("displayName must be a string")
    name = value.strip()
    if len(name) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidInput(f"displayName must be at most {MAX_DISPLAY_NAME_LENGTH} characters")
    return name or None


def mask_session_id(session_id: str, *, head: int = 9, tail: int = 4) -> str:
    if len(session_id) <= head + tail + 3:
        return "***"
    return f"{session_id[:head]}...{session_id[-tail:]}"


class IdentityService:
    def __init__(
        self,
        auth: AsyncAuthRepository,
        documents: AsyncProjectRepository,
        *,
        hasher: PasswordHasher,
        session_ttl_seconds: int,
    ):
        self._auth = auth
        self._documents = documents
        self._hasher = hasher
        self._session_ttl = int(session_ttl_seconds)

    async def register(self, email: Any, password: Any, display_name: Any = None) -> IssuedSession:
        email = normalize_email(email)
        password = check_new_password(password)
        name = clean_display_name(display_name)

        if await self._auth.get_user_by_email(email):
            raise Conflict("Email already registered")

        # bcrypt is deliberately slow; keep it off the event loop.
        password_hash = await asyncio.to_thread(self._hasher.hash, password)
        user = UserRecord(
            id=self._new_user_id(),
            email=email,
            password_hash=password_hash,
            display_name=name,
            created_at=int(time.time()),
        )
        await self._auth.create_user(user)
        await self._documents.create_empty(user.id)
        logger.info("REGISTER: created user_id=%s", user.id)
        return await self._open_session(user)

    async def login(self, email: Any, password: Any) -> IssuedSession:
        if not isinstance(email, str) or not isinstance(password, str) or not email.strip() or not password:
            raise InvalidInput("email and password are required")

        user = await self._auth.get_user_by_email(email.strip().lower())
        ok = await asyncio.to_thread(self._hasher.verify, password, user.password_hash if user else None)
        if user is None or not ok:
            # Same error for unknown email and wrong password.
            logger.info("LOGIN: rejected credentials")
            raise Unauthorized("Invalid email or password")
        logger.info("LOGIN: user_id=%s", user.id)
        return await self._open_session(user)

    async def logout(self, session_id: str | None) -> None:
        if not session_id:
            return
        await self._auth.delete_session(session_id)
        logger.info("LOGOUT: session=%s", mask_session_id(session_id))

    async def resolve(self, session_id: str | None) -> Identity | None:
        if not session_id:
            return None
        record = await self._auth.get_session(session_id)
        if record is None:
            return None
        user = await self._auth.get_user(record.user_id)
        if user is None:
            return None
        return Identity(user_id=user.id, email=user.email, display_name=user.display_name)

    async def current_user(self, session_id: str | None) -> Identity | None:
        return await self.resolve(session_id)

    async def change_password(self, identity: Identity, old_password: Any, new_password: Any) -> None:
        if not isinstance(old_password, str):
            raise InvalidInput("oldPassword is required")
        new_password = check_new_password(new_password)

        user = await self._auth.get_user(identity.user_id)
        if user is None:
            raise AuthRequired()
        ok = await asyncio.to_thread(self._hasher.verify, old_password, user.password_hash)
        if not ok:
            raise Unauthorized("Current password is incorrect")

        password_hash = await asyncio.to_thread(self._hasher.hash, new_password)
        await self._auth.set_password_hash(user.id, password_hash)
        logger.info("PASSWORD: changed for user_id=%s", user.id)

    async def update_profile(self, identity: Identity, display_name: Any) -> Identity:
        name = clean_display_name(display_name)
        await self._auth.set_display_name(identity.user_id, name)
        return Identity(user_id=identity.user_id, email=identity.email, display_name=name)

    def _new_user_id(self) -> str:
        return f"user_{secrets.token_hex(16)}"

    async def _open_session(self, user: UserRecord) -> IssuedSession:
        session_id = f"sess_{secrets.token_urlsafe(32)}"
        now = int(time.time())
        record = SessionRecord(user_id=user.id, created_at=now, expires_at=now + self._session_ttl)
        await self._auth.put_session(session_id, record)
        identity = Identity(user_id=user.id, email=user.email, display_name=user.display_name)
        return IssuedSession(session_id=session_id, identity=identity)


class SingleUserIdentityService(IdentityService):
    """
    Development mode without a user table: the one account always gets
    LOCAL_USER_ID, so every live session resolves to it. A session cookie is
    still required.
    """

    def _new_user_id(self) -> str:
        return LOCAL_USER_ID


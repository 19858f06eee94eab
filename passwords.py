from __future__ import annotations

import bcrypt

from errors import InvalidInput

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes; longer inputs are rejected outright.
MAX_PASSWORD_BYTES = 72


def check_new_password(password: object) -> str:
    if not isinstance(password, str):
        raise InvalidInput("password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


def hash_password(password: str, *, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash.
        return False


class PasswordHasher:
    """
    Holds the bcrypt cost factor and a throwaway hash used to keep login timing
    identical for unknown emails.
    """

    def __init__(self, *, rounds: int = 12):
        self.rounds = rounds
        self._dummy_hash = hash_password("not-a-real-password", rounds=rounds)

    def hash(self, password: str) -> str:
        return hash_password(password, rounds=self.rounds)

    def verify(self, password: str, password_hash: str | None) -> bool:
        if password_hash is None:
            verify_password(password, self._dummy_hash)
            return False
        return verify_password(password, password_hash)

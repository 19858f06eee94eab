from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent

STORAGE_BACKENDS = ("sql", "file")
SAMESITE_VALUES = ("lax", "strict", "none")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip().rstrip("/") for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    # Storage
    storage_backend: str
    data_dir: Path
    database_url: str
    backup_keep: int

    # Sessions / cookies
    session_ttl_seconds: int
    session_cookie_name: str
    cookie_secure: bool
    cookie_samesite: str

    # Passwords
    bcrypt_rounds: int

    # HTTP
    cors_origins: list[str]
    client_dist_dir: Path
    host: str
    port: int

    # Debug
    debug_log_requests: bool


def get_settings() -> Settings:
    storage_backend = os.getenv("STORAGE_BACKEND", "sql").strip().lower()
    if storage_backend not in STORAGE_BACKENDS:
        raise ValueError(f"STORAGE_BACKEND must be one of {STORAGE_BACKENDS}, got {storage_backend!r}")

    data_dir = Path(os.getenv("DATA_DIR") or PROJECT_ROOT / "data")
    database_url = os.getenv("DATABASE_URL") or f"sqlite:///{data_dir / 'issues.db'}"

    cookie_samesite = os.getenv("COOKIE_SAMESITE", "lax").strip().lower()
    if cookie_samesite not in SAMESITE_VALUES:
        raise ValueError(f"COOKIE_SAMESITE must be one of {SAMESITE_VALUES}, got {cookie_samesite!r}")
    cookie_secure = _env_bool("COOKIE_SECURE", False)
    # Browsers drop SameSite=None cookies that are not Secure.
    if cookie_samesite == "none" and not cookie_secure:
        raise ValueError("COOKIE_SAMESITE=none requires COOKIE_SECURE=true")

    return Settings(
        storage_backend=storage_backend,
        data_dir=data_dir,
        database_url=database_url,
        backup_keep=max(1, _env_int("BACKUP_KEEP", 20)),
        session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", 30 * 24 * 60 * 60),
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "issues_session"),
        cookie_secure=cookie_secure,
        cookie_samesite=cookie_samesite,
        bcrypt_rounds=_env_int("BCRYPT_ROUNDS", 12),
        cors_origins=_env_list("CORS_ORIGINS", "http://localhost:3000"),
        client_dist_dir=Path(os.getenv("CLIENT_DIST_DIR") or PROJECT_ROOT / "client" / "build"),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_env_int("PORT", 5001),
        debug_log_requests=_env_bool("DEBUG_LOG_REQUESTS", False),
    )

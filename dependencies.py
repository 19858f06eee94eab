"""
Dependency wiring for the FastAPI app.

The storage backend is picked once from settings; request handlers only ever
see the async repositories and services built here.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from errors import AuthRequired
from passwords import PasswordHasher
from persistence.auth_state import DiskAccountRepository, DiskSessionRepository, Identity
from persistence.paths import auth_dir, backups_dir, projects_file
from persistence.project_state import FileDocumentStore
from persistence.repositories import AsyncAuthRepository, AsyncProjectRepository
from persistence.sql_store import SqlDbClient
from services.backup import BackupService
from services.identity import IdentityService, SingleUserIdentityService
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

_settings: Settings | None = None
_sql_client: SqlDbClient | None = None
_project_repo: AsyncProjectRepository | None = None
_identity_service: IdentityService | None = None
_backup_service: BackupService | None = None


def get_app_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def _get_sql_client() -> SqlDbClient:
    global _sql_client
    if _sql_client is None:
        settings = get_app_settings()
        if settings.database_url.startswith("sqlite"):
            settings.data_dir.mkdir(parents=True, exist_ok=True)
        _sql_client = SqlDbClient(settings.database_url)
        removed = _sql_client.delete_expired_sessions()
        if removed:
            logger.info("SESSIONS: dropped %d expired sessions", removed)
    return _sql_client


def get_project_repository() -> AsyncProjectRepository:
    global _project_repo
    if _project_repo:
        return _project_repo

    settings = get_app_settings()
    if settings.storage_backend == "file":
        store = FileDocumentStore(
            path=projects_file(settings.data_dir),
            backups_dir=backups_dir(settings.data_dir),
            keep=settings.backup_keep,
        )
        logger.info("STORAGE: single-user file store at %s", store.path)
        _project_repo = AsyncProjectRepository(store)
    else:
        logger.info("STORAGE: relational store")
        _project_repo = AsyncProjectRepository(_get_sql_client())
    return _project_repo


def get_identity_service() -> IdentityService:
    global _identity_service
    if _identity_service:
        return _identity_service

    settings = get_app_settings()
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    documents = get_project_repository()
    if settings.storage_backend == "file":
        base = auth_dir(settings.data_dir)
        auth = AsyncAuthRepository(DiskAccountRepository(auth_dir=base), DiskSessionRepository(auth_dir=base))
        _identity_service = SingleUserIdentityService(
            auth, documents, hasher=hasher, session_ttl_seconds=settings.session_ttl_seconds
        )
    else:
        sql = _get_sql_client()
        _identity_service = IdentityService(
            AsyncAuthRepository(sql, sql), documents, hasher=hasher, session_ttl_seconds=settings.session_ttl_seconds
        )
    return _identity_service


def get_backup_service() -> BackupService:
    global _backup_service
    if _backup_service is None:
        _backup_service = BackupService(get_project_repository())
    return _backup_service


def reset_dependencies() -> None:
    """Drop every singleton so the next request rebuilds from current settings (tests)."""
    global _settings, _sql_client, _project_repo, _identity_service, _backup_service
    if _sql_client is not None:
        _sql_client.dispose()
    _settings = None
    _sql_client = None
    _project_repo = None
    _identity_service = None
    _backup_service = None


def get_session_id(request: Request) -> str | None:
    return request.cookies.get(get_app_settings().session_cookie_name) or None


async def optional_identity(
    session_id: str | None = Depends(get_session_id),
    service: IdentityService = Depends(get_identity_service),
) -> Identity | None:
    return await service.resolve(session_id)


async def require_identity(identity: Identity | None = Depends(optional_identity)) -> Identity:
    if identity is None:
        raise AuthRequired()
    return identity

from __future__ import annotations

from .auth_state import (
    LOCAL_USER_ID,
    DiskAccountRepository,
    DiskSessionRepository,
    Identity,
    SessionRecord,
    SessionRepository,
    UserRecord,
    UserRepository,
)
from .interfaces import DocumentStore
from .project_state import FileDocumentStore, IssueRecord, ProjectRecord, validate_document
from .repositories import AsyncAuthRepository, AsyncProjectRepository
from .sql_store import SqlDbClient

__all__ = [
    "LOCAL_USER_ID",
    "DiskAccountRepository",
    "DiskSessionRepository",
    "Identity",
    "SessionRecord",
    "SessionRepository",
    "UserRecord",
    "UserRepository",
    "DocumentStore",
    "FileDocumentStore",
    "IssueRecord",
    "ProjectRecord",
    "validate_document",
    "AsyncAuthRepository",
    "AsyncProjectRepository",
    "SqlDbClient",
]

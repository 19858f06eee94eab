from __future__ import annotations

from .backup import BackupService, backup_filename
from .identity import IdentityService, IssuedSession, SingleUserIdentityService

__all__ = [
    "BackupService",
    "backup_filename",
    "IdentityService",
    "IssuedSession",
    "SingleUserIdentityService",
]

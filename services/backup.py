from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from errors import InvalidInput
from json_store import filesystem_timestamp
from persistence.auth_state import Identity
from persistence.project_state import validate_document
from persistence.repositories import AsyncProjectRepository

logger = logging.getLogger(__name__)


def backup_filename(now: datetime | None = None) -> str:
    return f"issues-backup-{filesystem_timestamp(now)}.json"


class BackupService:
    """
    Manual export/import of a user's whole project document as {"payload": [...]}.
    """

    def __init__(self, documents: AsyncProjectRepository):
        self._documents = documents

    async def export_backup(self, identity: Identity) -> dict[str, Any]:
        return {"payload": await self._documents.read(identity.user_id)}

    async def import_backup(self, identity: Identity, artifact: Any) -> list[dict[str, Any]]:
        if not isinstance(artifact, dict) or not isinstance(artifact.get("payload"), list):
            raise InvalidInput("payload must be an array of projects")
        document = validate_document(artifact["payload"])
        await self._documents.replace(identity.user_id, document)
        logger.info("RESTORE: user_id=%s projects=%d", identity.user_id, len(document))
        return document

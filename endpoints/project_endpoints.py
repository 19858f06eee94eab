from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from dependencies import get_app_settings, get_backup_service, get_project_repository, require_identity
from endpoints.common import read_json_body
from persistence.auth_state import Identity
from persistence.project_state import validate_document
from persistence.repositories import AsyncProjectRepository
from services.backup import BackupService, backup_filename
from settings import Settings

router = APIRouter(prefix="/api", tags=["projects"])
logger = logging.getLogger(__name__)


@router.get("/projects")
async def get_projects(
    identity: Identity = Depends(require_identity),
    repo: AsyncProjectRepository = Depends(get_project_repository),
) -> JSONResponse:
    return JSONResponse(await repo.read(identity.user_id))


# POST kept as an alias of PUT for older clients.
@router.api_route("/projects", methods=["PUT", "POST"])
async def replace_projects(
    request: Request,
    identity: Identity = Depends(require_identity),
    repo: AsyncProjectRepository = Depends(get_project_repository),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    document = validate_document(await read_json_body(request))
    await repo.replace(identity.user_id, document)
    if settings.debug_log_requests:
        logger.info("PROJECTS SAVE: user_id=%s projects=%d", identity.user_id, len(document))
    return {"status": "ok"}


@router.get("/backup")
async def export_backup(
    identity: Identity = Depends(require_identity),
    service: BackupService = Depends(get_backup_service),
) -> JSONResponse:
    artifact = await service.export_backup(identity)
    return JSONResponse(
        artifact,
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@router.post("/restore")
async def restore_backup(
    request: Request,
    identity: Identity = Depends(require_identity),
    service: BackupService = Depends(get_backup_service),
) -> dict[str, Any]:
    await service.import_backup(identity, await read_json_body(request))
    return {"ok": True}

# auth_endpoints.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from dependencies import (
    get_app_settings,
    get_identity_service,
    get_session_id,
    require_identity,
)
from endpoints.common import clear_session_cookie, read_json_object, set_session_cookie
from persistence.auth_state import Identity
from services.identity import IdentityService, IssuedSession
from settings import Settings

router = APIRouter(prefix="/api", tags=["auth"])
logger = logging.getLogger(__name__)


def _session_response(issued: IssuedSession, settings: Settings) -> JSONResponse:
    resp = JSONResponse(
        {
            "ok": True,
            "email": issued.identity.email,
            "displayName": issued.identity.display_name,
        }
    )
    set_session_cookie(resp, issued, settings)
    return resp


@router.post("/auth/register")
async def register(
    request: Request,
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    body = await read_json_object(request)
    # The original form posts `name`; accept `displayName` too.
    display_name = body.get("name", body.get("displayName"))
    issued = await service.register(body.get("email"), body.get("password"), display_name)
    return _session_response(issued, settings)


@router.post("/auth/login")
async def login(
    request: Request,
    previous_session: str | None = Depends(get_session_id),
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    body = await read_json_object(request)
    issued = await service.login(body.get("email"), body.get("password"))
    # Don't leave the replaced session lying around.
    if previous_session:
        await service.logout(previous_session)
    return _session_response(issued, settings)


@router.post("/auth/logout")
async def logout(
    session_id: str | None = Depends(get_session_id),
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    await service.logout(session_id)
    resp = JSONResponse({"ok": True})
    clear_session_cookie(resp, settings)
    return resp


@router.post("/auth/change-password")
async def change_password(
    request: Request,
    identity: Identity = Depends(require_identity),
    service: IdentityService = Depends(get_identity_service),
) -> dict[str, Any]:
    body = await read_json_object(request)
    await service.change_password(identity, body.get("oldPassword"), body.get("newPassword"))
    return {"ok": True}


@router.get("/me")
async def me(
    session_id: str | None = Depends(get_session_id),
    service: IdentityService = Depends(get_identity_service),
) -> dict[str, Any]:
    identity = await service.current_user(session_id)
    if identity is None:
        return {"userId": None}
    return identity.as_public_dict()


@router.patch("/me")
async def update_me(
    request: Request,
    identity: Identity = Depends(require_identity),
    service: IdentityService = Depends(get_identity_service),
) -> dict[str, Any]:
    body = await read_json_object(request)
    if "displayName" in body:
        await service.update_profile(identity, body["displayName"])
    return {"ok": True}

from __future__ import annotations

import json
from typing import Any

from fastapi import Request, Response

from errors import InvalidInput
from services.identity import IssuedSession
from settings import Settings


async def read_json_body(request: Request) -> Any:
    """
    Parse the request body ourselves so the session check always runs first
    and malformed JSON maps to InvalidInput instead of a framework 422.
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise InvalidInput("Request body must be valid JSON") from e


async def read_json_object(request: Request) -> dict[str, Any]:
    body = await read_json_body(request)
    if not isinstance(body, dict):
        raise InvalidInput("Request body must be a JSON object")
    return body


def set_session_cookie(response: Response, issued: IssuedSession, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=issued.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite=settings.cookie_samesite,
        secure=settings.cookie_secure,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite=settings.cookie_samesite,
        secure=settings.cookie_secure,
    )

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dotenv import load_dotenv

from dependencies import get_app_settings
from errors import Internal, IssuesRegisterError, NotFound

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(IssuesRegisterError)
    async def _domain_error(request: Request, exc: IssuesRegisterError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("REQUEST FAILED: %s %s: %s", request.method, request.url.path, exc.message)
        return _error(exc.message, exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error(message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error("Invalid request", 400)

    @app.middleware("http")
    async def _catch_unexpected(request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception:
            # Storage and other unexpected failures: log everything, leak nothing.
            logger.exception("REQUEST FAILED: %s %s", request.method, request.url.path)
            return _error(Internal.default_message, Internal.status_code)
        if get_app_settings().debug_log_requests:
            logger.info("REQUEST: %s %s -> %s", request.method, request.url.path, response.status_code)
        return response


def _install_client_routes(app: FastAPI, dist_dir: Path) -> None:
    @app.api_route(API_PREFIX, methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    @app.api_route(API_PREFIX + "/{rest:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def _unknown_api_route(rest: str = ""):
        raise NotFound()

    @app.get("/{full_path:path}")
    async def _spa_fallback(full_path: str):
        root = dist_dir.resolve()
        index = root / "index.html"
        if not index.is_file():
            raise NotFound()
        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(candidate)
        return FileResponse(index)


def create_app() -> FastAPI:
    load_dotenv("local.env")

    from endpoints.auth_endpoints import router as auth_router
    from endpoints.project_endpoints import router as project_router

    settings = get_app_settings()

    app = FastAPI(title="Issues Register")

    # Cookies only cross origins when credentials are allowed for explicit origins.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    _install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(project_router)

    _install_client_routes(app, settings.client_dist_dir)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = get_app_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)

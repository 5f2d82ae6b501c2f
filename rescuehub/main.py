"""FastAPI application entry point."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from rescuehub.api.router import api_router
from rescuehub.config import Settings, get_settings
from rescuehub.db.engine import create_all
from rescuehub.services.errors import RescueError
from rescuehub.services.image_store import UploadStore
from rescuehub.services.rate_limit import LoginRateLimiter

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_all()
    yield


def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RescueError)
    async def rescue_error_handler(request: Request, exc: RescueError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            err = errors[0]
            field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            message = f"{field}: {err.get('msg')}" if field else str(err.get("msg"))
        else:
            message = "Invalid request"
        return _error(400, message)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Dog rescue requests, rescuer assignments, rescued dogs and adoptions.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.login_limiter = LoginRateLimiter(
        settings.auth.login_max_attempts, settings.auth.login_window_seconds,
    )
    app.state.upload_store = UploadStore(settings.uploads)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    _register_error_handlers(app)
    app.include_router(api_router)

    # Uploaded images
    uploads_dir = Path(settings.uploads.base_dir)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.uploads.url_prefix, StaticFiles(directory=str(uploads_dir)), name="uploads")

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": settings.app_name}

    return app


app = create_app()

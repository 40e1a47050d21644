import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import anyio
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.v1 import admin, analytics, contact, github_data, posts, webhook
from core.config import Settings, get_settings
from core.errors import ApiError, get_error_severity
from core.logging_config import configure_logging, sanitize_headers
from core.rate_limit import configure_limiter, rate_limit_exceeded_handler
from middleware.analytics import analytics_middleware
from middleware.security import request_id_middleware, security_headers_middleware
from repositories.datastore import JsonDatastore
from services.analytics_service import get_client_ip
from services.data_sync import DataSyncJob
from services.github_service import GitHubService
from services.scheduler import CronScheduler

logger = logging.getLogger(__name__)


def _error_body(request: Request, status_code: int, detail, code: str, **extra) -> dict:
    body = {
        "status_code": status_code,
        "data": None,
        "detail": detail,
        "code": code,
        "requestId": getattr(request.state, "request_id", None),
    }
    body.update(extra)
    return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    settings = request.app.state.settings
    severity = get_error_severity(exc)
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s %s -> %s %s (%s): %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.code,
        severity,
        exc.message,
    )
    extra = {}
    if exc.details:
        extra["details"] = {key: value for key, value in exc.details.items() if value is not None}
    if settings.is_development:
        extra["error"] = exc.to_dict(include_debug=True)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.message, exc.code, **extra),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail, "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=_error_body(request, 422, "Request validation failed", "VALIDATION_ERROR", errors=errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s from %s headers=%s",
        request.method,
        request.url.path,
        get_client_ip(request),
        sanitize_headers(request.headers),
        exc_info=exc,
    )
    settings = request.app.state.settings
    detail = str(exc) if settings.is_development else "Internal server error"
    return JSONResponse(status_code=500, content=_error_body(request, 500, detail, "INTERNAL_ERROR"))


def create_app(settings: Optional[Settings] = None, github_service: Optional[GitHubService] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    store = JsonDatastore(settings.db_path)
    github = github_service or GitHubService(settings)
    sync_job = DataSyncJob(store, github, settings)
    scheduler = CronScheduler()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.initialize()
        await sync_job.initialize()
        await sync_job.perform_initial_sync()
        async with anyio.create_task_group() as task_group:
            if settings.scheduler_enabled:
                sync_job.start_scheduled_sync(scheduler, task_group)
            logger.info("Portfolio backend started (%s) on %s:%s", settings.app_env, settings.host, settings.port)
            try:
                yield
            finally:
                scheduler.stop()
                await github.aclose()
        logger.info("Portfolio backend stopped")

    app = FastAPI(
        title="Portfolio Backend API",
        description="GitHub portfolio data, visitor analytics and contact handling.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.datastore = store
    app.state.github = github
    app.state.sync_job = sync_job
    app.state.scheduler = scheduler
    app.state.started_at = time.monotonic()

    app.state.limiter = configure_limiter(settings)

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Last added runs first.
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(analytics_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Admin-Key", "X-Request-ID"],
    )

    app.include_router(github_data.router)
    app.include_router(analytics.router)
    app.include_router(admin.router)
    app.include_router(webhook.router)
    app.include_router(contact.router)
    app.include_router(posts.router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()

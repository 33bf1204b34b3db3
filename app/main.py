"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.dependencies import AppServices, build_services
from .config.settings import Settings, settings as default_settings
from .controllers import audios, export, phrases, stats
from .domain.errors import (
    CollectionError,
    InvalidMediaError,
    NormalizationError,
    PayloadTooLargeError,
    PhraseNotFoundError,
    RepositoryUnavailableError,
    StorageError,
)
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
_ERROR_STATUS: tuple[tuple[type[CollectionError], int], ...] = (
    (PayloadTooLargeError, 413),
    (InvalidMediaError, 400),
    (NormalizationError, 422),
    (StorageError, 502),
    (PhraseNotFoundError, 404),
    (RepositoryUnavailableError, 503),
)


def status_for_error(exc: CollectionError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _configure_logging(settings: Settings) -> None:
    """Ensure logs stream to stdout and rotating files."""

    logging.getLogger().handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("app.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    submission_log_path = Path(settings.submission_log_file)
    submission_log_path.parent.mkdir(parents=True, exist_ok=True)
    submission_handler = RotatingFileHandler(
        submission_log_path,
        maxBytes=500_000,
        backupCount=5,
        encoding="utf-8",
    )
    submission_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    submission_logger = logging.getLogger("app.services.submission_recorder")
    submission_logger.handlers.clear()
    submission_logger.addHandler(submission_handler)
    submission_logger.setLevel(logging.INFO)

    noisy_loggers = [
        "botocore",
        "boto3",
        "urllib3",
        "sqlalchemy.engine",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(
    settings: Settings | None = None,
    *,
    services: AppServices | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or default_settings
    _configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Voice collection backend: phrase distribution and audio intake",
    )
    app.state.settings = settings
    app.state.services = services or build_services(settings)

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(phrases.router)
    app.include_router(audios.router)
    app.include_router(stats.router)
    app.include_router(export.router)

    if settings.storage.backend == "local" and settings.storage.public_base_url.startswith("/"):
        upload_dir = Path(settings.storage.local_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        app.mount(
            settings.storage.public_base_url,
            StaticFiles(directory=upload_dir),
            name="uploads",
        )

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""

        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(CollectionError)
    async def collection_error_handler(request: Request, exc: CollectionError):
        status_code = status_for_error(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.kind, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.kind},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        await app.state.services.startup()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await app.state.services.shutdown()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )

import os
from pathlib import Path

from fastapi import FastAPI
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import TempdropError
from core.logging_config import setup_logging
from core.settings import get_settings
from core.storage import S3Storage
from services.api.exception_handlers import (
    http_exception_handler,
    tempdrop_exception_handler,
    unhandled_exception_handler,
)
from services.api.middleware import SecurityHeadersMiddleware
from services.api.routes import get_storage, router
from services.api.schemas import HealthResponse


def create_app() -> FastAPI:
    json_logging = os.getenv("JSON_LOGGING", "false").lower() in {"true", "1", "yes"}
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_file = os.getenv("LOG_FILE")
    setup_logging(
        level=log_level,
        json_format=json_logging,
        log_file=Path(log_file) if log_file else None,
    )

    app = FastAPI(
        title="Tempdrop",
        version="0.1.0",
        description="Ephemeral file sharing backed by an expiring object store",
    )

    app.add_middleware(SecurityHeadersMiddleware)

    @app.on_event("startup")
    async def _load_settings() -> None:
        settings = get_settings()
        logger.info(
            "Tempdrop started with storage backend={backend} ttl={ttl}s",
            backend=settings.storage.backend,
            ttl=settings.share.ttl_seconds,
        )
        if settings.storage.manage_lifecycle:
            storage = get_storage()
            if isinstance(storage, S3Storage):
                storage.ensure_lifecycle(days=settings.storage.lifecycle_days)
            else:
                logger.warning("storage.manage_lifecycle is only supported for the s3 backend")

    @app.get("/healthz", response_model=HealthResponse, tags=["meta"])
    async def healthcheck() -> HealthResponse:
        return HealthResponse()

    app.add_exception_handler(TempdropError, tempdrop_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(router)

    return app


app = create_app()


__all__ = ["app", "create_app"]

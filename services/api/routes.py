from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from loguru import logger
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from core.exceptions import MissingUploadError, ObjectNotFoundError
from core.settings import Settings, get_settings
from core.storage import ORIGINAL_FILENAME_KEY, ObjectStorage, build_storage
from services.api.page import render_upload_page
from services.api.schemas import ErrorResponse, UploadResponse
from services.api.utils import (
    DOWNLOAD_PREFIX,
    build_object_key,
    build_share_url,
    content_disposition,
    sanitize_filename,
)


router = APIRouter()

UPLOAD_ERRORS = {
    400: {"model": ErrorResponse, "description": "No file field in the form"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
}
DOWNLOAD_ERRORS = {
    404: {"model": ErrorResponse, "description": "Unknown or expired key"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
}


def get_app_settings() -> Settings:
    return get_settings()


@lru_cache(maxsize=1)
def get_storage() -> ObjectStorage:
    return build_storage(get_settings().storage)


@router.get("/", response_class=HTMLResponse, tags=["share"])
async def upload_page(settings: Settings = Depends(get_app_settings)) -> HTMLResponse:
    return HTMLResponse(render_upload_page(settings.share.ttl_seconds))


@router.post("/upload", response_model=UploadResponse, responses=UPLOAD_ERRORS, tags=["share"])
async def upload_file(
    request: Request,
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> UploadResponse:
    form = await request.form()
    try:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise MissingUploadError("No file uploaded.")

        filename = sanitize_filename(upload.filename)
        key = build_object_key(filename)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=settings.share.ttl_seconds)
        uri = await run_in_threadpool(
            storage.put,
            key,
            upload.file,
            expires_at=expires_at,
            content_type=upload.content_type or None,
            metadata={ORIGINAL_FILENAME_KEY: filename},
        )
    finally:
        await form.close()

    logger.info("[upload] Stored {key} at {uri}, expires {expires_at}", key=key, uri=uri, expires_at=expires_at.isoformat())
    base_url = settings.share.public_base_url or str(request.base_url)
    return UploadResponse(
        url=build_share_url(base_url, key),
        key=key,
        expires_at=expires_at,
    )


@router.get(DOWNLOAD_PREFIX + "{key:path}", responses=DOWNLOAD_ERRORS, tags=["share"])
async def download_file(
    key: str,
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> StreamingResponse:
    stored = await run_in_threadpool(storage.get, key)
    if stored is None:
        logger.warning("[download] {key} not found or expired", key=key)
        raise ObjectNotFoundError("File not found or has expired.", {"key": key})

    filename = stored.original_filename or settings.share.fallback_filename
    # Stored content type goes out unchanged, never with an added charset
    headers = {
        "Content-Type": stored.content_type or "application/octet-stream",
        "Content-Disposition": content_disposition(filename),
    }
    if stored.size is not None:
        headers["Content-Length"] = str(stored.size)

    logger.info("[download] Streaming {key}", key=key)
    return StreamingResponse(
        stored.body,
        headers=headers,
        background=BackgroundTask(stored.close),
    )


__all__ = ["router", "get_storage", "get_app_settings"]

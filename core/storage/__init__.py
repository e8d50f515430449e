"""Storage abstraction (S3-compatible object store or local filesystem fallback)."""

from __future__ import annotations

from pathlib import Path

from core.settings import PROJECT_ROOT, StorageSettings
from core.storage.base import (
    EXPIRES_AT_KEY,
    ORIGINAL_FILENAME_KEY,
    ObjectStorage,
    StoredObject,
)
from core.storage.local import LocalStorage
from core.storage.s3 import S3Storage


def build_storage(settings: StorageSettings) -> ObjectStorage:
    if settings.backend == "s3":
        return S3Storage(
            bucket=settings.bucket or "",
            prefix=settings.prefix,
            region=settings.region,
            endpoint_url=settings.endpoint_url,
        )
    root = settings.local_root
    if not root.is_absolute():
        root = PROJECT_ROOT / root
    return LocalStorage(Path(root))


__all__ = [
    "EXPIRES_AT_KEY",
    "ORIGINAL_FILENAME_KEY",
    "LocalStorage",
    "ObjectStorage",
    "S3Storage",
    "StoredObject",
    "build_storage",
]

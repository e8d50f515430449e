from __future__ import annotations

import json
import shutil
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterator

from loguru import logger

from core.exceptions import InvalidKeyError, StorageError
from core.storage.base import (
    CHUNK_SIZE,
    Clock,
    StoredObject,
    is_expired,
    parse_instant,
    utcnow,
)

META_DIR = ".meta"
META_SUFFIX = ".json"


def _iter_file(handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    try:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()


class LocalStorage:
    """Filesystem-backed object store with JSON metadata sidecars.

    Sidecars live under ``root/.meta`` mirroring the key, so no payload name can
    collide with them. Expiry is enforced on read; ``purge_expired`` sweeps the
    metadata tree.
    """

    def __init__(self, root: Path, *, clock: Clock = utcnow) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    @property
    def _meta_root(self) -> Path:
        return self.root.resolve() / META_DIR

    def _path(self, key: str) -> Path:
        root = self.root.resolve()
        path = (root / key).resolve()
        if not key or path == root or root not in path.parents:
            raise InvalidKeyError("Storage key escapes the storage root", {"key": key})
        if path.relative_to(root).parts[0] == META_DIR:
            raise InvalidKeyError("Storage key points into the metadata tree", {"key": key})
        return path

    def _meta_path(self, path: Path) -> Path:
        relative = path.relative_to(self.root.resolve())
        target = self._meta_root / relative
        return target.with_name(target.name + META_SUFFIX)

    def put(
        self,
        key: str,
        stream: BinaryIO,
        *,
        expires_at: datetime,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        path = self._path(key)
        meta_path = self._meta_path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("wb") as target:
                shutil.copyfileobj(stream, target, CHUNK_SIZE)
            payload = {
                "content_type": content_type,
                "metadata": metadata or {},
                "expires_at": expires_at.isoformat(),
            }
            meta_path.parent.mkdir(parents=True, exist_ok=True)
            meta_path.write_text(json.dumps(payload), encoding="utf-8")
        except OSError as exc:
            self._remove(path)
            raise StorageError(f"Could not write object: {exc}", {"key": key}) from exc
        return str(path)

    def get(self, key: str) -> StoredObject | None:
        try:
            path = self._path(key)
        except InvalidKeyError:
            logger.warning("Rejected storage key {key}", key=key)
            return None
        meta_path = self._meta_path(path)
        if not path.is_file() or not meta_path.is_file():
            return None

        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable metadata for {key}, treating as absent", key=key)
            return None
        expires_at = parse_instant(meta.get("expires_at"))
        if is_expired(expires_at, self._clock()):
            self._remove(path)
            return None

        handle = path.open("rb")
        return StoredObject(
            key=key,
            body=_iter_file(handle),
            content_type=meta.get("content_type"),
            metadata=dict(meta.get("metadata") or {}),
            expires_at=expires_at,
            size=path.stat().st_size,
            _close=handle.close,
        )

    def delete(self, key: str) -> None:
        self._remove(self._path(key))

    def purge_expired(self) -> int:
        now = self._clock()
        purged = 0
        meta_root = self._meta_root
        if not meta_root.is_dir():
            return 0
        for meta_path in list(meta_root.rglob(f"*{META_SUFFIX}")):
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                logger.warning("Skipping unreadable metadata {path}", path=meta_path)
                continue
            if is_expired(parse_instant(meta.get("expires_at")), now):
                relative = meta_path.relative_to(meta_root)
                payload = self.root.resolve() / relative.with_name(relative.name[: -len(META_SUFFIX)])
                self._remove(payload)
                purged += 1
        return purged

    def _remove(self, path: Path) -> None:
        meta_path = self._meta_path(path)
        path.unlink(missing_ok=True)
        meta_path.unlink(missing_ok=True)
        self._prune(path.parent, self.root.resolve())
        self._prune(meta_path.parent, self._meta_root)

    @staticmethod
    def _prune(directory: Path, stop: Path) -> None:
        # Drop per-upload directories once they are empty
        while directory != stop and stop in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                return
            directory = directory.parent


__all__ = ["LocalStorage"]

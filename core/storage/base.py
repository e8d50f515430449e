from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Iterator, Protocol

ORIGINAL_FILENAME_KEY = "original-filename"
EXPIRES_AT_KEY = "expires-at"
CHUNK_SIZE = 64 * 1024

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StoredObject:
    key: str
    body: Iterator[bytes]
    content_type: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    expires_at: datetime | None = None
    size: int | None = None
    _close: Callable[[], None] | None = None

    @property
    def original_filename(self) -> str | None:
        return self.metadata.get(ORIGINAL_FILENAME_KEY) or None

    def close(self) -> None:
        if self._close is not None:
            self._close()
            self._close = None


class ObjectStorage(Protocol):
    def put(
        self,
        key: str,
        stream: BinaryIO,
        *,
        expires_at: datetime,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:  # returns uri
        ...

    def get(self, key: str) -> StoredObject | None:
        ...

    def delete(self, key: str) -> None:
        ...

    def purge_expired(self) -> int:
        ...


def is_expired(expires_at: datetime | None, now: datetime) -> bool:
    return expires_at is not None and expires_at <= now


def parse_instant(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "CHUNK_SIZE",
    "EXPIRES_AT_KEY",
    "ORIGINAL_FILENAME_KEY",
    "Clock",
    "ObjectStorage",
    "StoredObject",
    "is_expired",
    "parse_instant",
    "utcnow",
]

from __future__ import annotations

import unicodedata
from urllib.parse import quote
from uuid import uuid4

# UTF-8 bytes; leaves room under NAME_MAX for metadata suffixes
MAX_FILENAME_BYTES = 200
MAX_EXTENSION_BYTES = 16
DEFAULT_FILENAME = "file"
DOWNLOAD_PREFIX = "/file/"


def sanitize_filename(name: str | None) -> str:
    """Reduce a client-supplied filename to a single safe path component."""
    if not name:
        return DEFAULT_FILENAME
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = "".join(ch for ch in base if unicodedata.category(ch)[0] != "C").strip()
    if cleaned in {"", ".", ".."}:
        return DEFAULT_FILENAME
    return _truncate_utf8(cleaned, MAX_FILENAME_BYTES)


def _clip(text: str, limit: int) -> str:
    return text.encode("utf-8")[:limit].decode("utf-8", "ignore")


def _truncate_utf8(name: str, limit: int) -> str:
    if len(name.encode("utf-8")) <= limit:
        return name
    stem, dot, extension = name.rpartition(".")
    suffix = dot + extension
    if stem and len(suffix.encode("utf-8")) <= MAX_EXTENSION_BYTES:
        return _clip(stem, limit - len(suffix.encode("utf-8"))) + suffix
    return _clip(name, limit)


def build_object_key(filename: str) -> str:
    return f"{uuid4()}/{filename}"


def build_share_url(base_url: str, key: str) -> str:
    return f"{base_url.rstrip('/')}{DOWNLOAD_PREFIX}{quote(key, safe='/')}"


def content_disposition(filename: str) -> str:
    """Build an ``attachment`` disposition that survives any filename.

    The quoted ``filename`` is an ASCII fallback; ``filename*`` carries the
    exact name for clients that understand RFC 5987.
    """
    safe = sanitize_filename(filename)
    ascii_name = "".join(ch if 32 <= ord(ch) < 127 else "_" for ch in safe)
    ascii_name = ascii_name.replace("\\", "\\\\").replace('"', '\\"')
    header = f'attachment; filename="{ascii_name}"'
    if not safe.isascii():
        header += f"; filename*=UTF-8''{quote(safe, safe='')}"
    return header


__all__ = [
    "DOWNLOAD_PREFIX",
    "build_object_key",
    "build_share_url",
    "content_disposition",
    "sanitize_filename",
]

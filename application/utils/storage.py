"""Application-level storage helpers to avoid infra coupling."""
from __future__ import annotations

import mimetypes
from pathlib import Path

# Extensions whose type must not depend on the host's mimetypes database
_KNOWN_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "mp3": "audio/mpeg",
    "txt": "text/plain",
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
}


def guess_content_type(filename: str) -> str:
    ext = Path(filename).suffix.lstrip(".").lower()
    if ext in _KNOWN_TYPES:
        return _KNOWN_TYPES[ext]
    ctype, _ = mimetypes.guess_type(filename)
    return ctype or "application/octet-stream"

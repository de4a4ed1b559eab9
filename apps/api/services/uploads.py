"""Local buffering of multipart uploads before they move to the media store."""

from __future__ import annotations

import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from config import settings
from services.errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".avif"}
ALLOWED_VIDEO_EXTENSIONS = {".mp4", ".mov", ".m4v", ".webm", ".avi", ".mkv"}
CHUNK_SIZE = 1024 * 1024


def _sanitize_filename(filename: str) -> str:
    base = os.path.basename(filename or "upload")
    safe = "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in base)
    return safe or "upload"


def has_upload(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


def _check_kind(upload: UploadFile, field_name: str, kind: str) -> str:
    suffix = Path(_sanitize_filename(upload.filename or "")).suffix.lower()
    content_type = (upload.content_type or "").lower()
    if kind == "video":
        allowed, prefix, label = ALLOWED_VIDEO_EXTENSIONS, "video/", "a video"
    else:
        allowed, prefix, label = ALLOWED_IMAGE_EXTENSIONS, "image/", "an image"
    if suffix not in allowed and not content_type.startswith(prefix):
        raise ValidationFailed(
            f"Unsupported file type for {field_name}. Upload {label} file.",
            errors=[{"field": field_name, "message": f"expected {prefix}*"}],
        )
    return suffix


async def save_upload_to_buffer(upload: UploadFile, field_name: str, kind: str = "image") -> Path:
    """
    Stream ``upload`` into the local buffer directory.

    The file is named ``<field>-<millis>-<random><ext>``. Oversized or
    mistyped uploads raise ValidationFailed and leave nothing behind.
    """
    suffix = _check_kind(upload, field_name, kind)
    root = Path(settings.UPLOAD_TEMP_DIR)
    root.mkdir(parents=True, exist_ok=True)
    destination = root / f"{field_name}-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{suffix}"

    max_bytes = int(settings.MAX_UPLOAD_BYTES)
    total_size = 0
    try:
        with destination.open("wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > max_bytes:
                    raise ValidationFailed(f"{field_name} exceeds the maximum upload size.")
                out.write(chunk)
    except Exception:
        destination.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    if total_size == 0:
        destination.unlink(missing_ok=True)
        raise ValidationFailed(f"{field_name} is empty.")
    return destination


def release_buffer(path: Path) -> None:
    """Delete a local buffer, logging instead of raising on failure."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not cleanup local upload buffer %s: %s", path, exc)

"""
Remote media store (Cloudinary) client and the compensating upload transaction.

``MediaStore`` moves a local buffer to the remote store and deletes remote
assets by URL. ``MediaTransaction`` wraps a create/replace request: every asset
transferred inside it is removed again if the request fails before
``commit()``, and every local buffer it created is released on exit.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import cloudinary.uploader
from fastapi import Request, UploadFile

from config import settings
from services.errors import DeleteFailed, UploadFailed
from services.uploads import release_buffer, save_upload_to_buffer

logger = logging.getLogger(__name__)

VIDEO_URL_EXTENSIONS = {"mp4", "avi", "mov", "mkv", "webm", "m4v"}


@dataclass
class RemoteAsset:
    url: str
    public_id: str
    resource_type: str = "image"
    duration: Optional[int] = None


def extract_public_id(url: Optional[str]) -> Optional[str]:
    """
    Derive the remote identifier from a delivery URL.

    ``https://res.cloudinary.com/<cloud>/video/upload/v1712/folder/clip.mp4``
    yields ``folder/clip``: the part after ``/upload/`` without the version
    segment and without the extension.
    """
    if not url:
        return None
    parts = url.split("?", 1)[0].split("/upload/", 1)
    if len(parts) < 2 or not parts[1]:
        return None

    segments = [segment for segment in parts[1].split("/") if segment]
    if segments and segments[0].startswith("v") and segments[0][1:].isdigit():
        segments = segments[1:]
    if not segments:
        return None

    segments[-1] = segments[-1].rsplit(".", 1)[0]
    public_id = "/".join(segments)
    return public_id or None


def resource_type_for_url(url: str) -> str:
    """Infer the remote resource kind from the URL's file extension."""
    path = (url or "").split("?", 1)[0]
    last = path.rsplit("/", 1)[-1]
    if "." not in last:
        return "image"
    extension = last.rsplit(".", 1)[-1].lower()
    return "video" if extension in VIDEO_URL_EXTENSIONS else "image"


class MediaStore:
    """Thin async wrapper over the Cloudinary uploader API."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str):
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }

    @classmethod
    def from_settings(cls) -> "MediaStore":
        return cls(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
        )

    async def transfer(self, local_path: Path, resource_type: str = "image") -> RemoteAsset:
        """
        Upload ``local_path`` and release it on success.

        On failure the local file is left in place and UploadFailed propagates.
        """
        path = Path(local_path)
        if not path.exists():
            raise UploadFailed("Local upload buffer is missing.")

        try:
            response: Dict[str, Any] = await asyncio.to_thread(
                cloudinary.uploader.upload,
                str(path),
                resource_type=resource_type,
                **self._credentials,
            )
        except Exception as exc:
            logger.warning("Remote upload of %s failed: %s", path.name, exc)
            raise UploadFailed(f"Media upload failed: {exc}") from exc

        url = response.get("secure_url") or response.get("url")
        if not url:
            await self._destroy_orphan(response.get("public_id"), resource_type)
            raise UploadFailed("Media upload failed: no URL returned.")

        duration = response.get("duration")
        asset = RemoteAsset(
            url=url,
            public_id=response.get("public_id") or extract_public_id(url) or "",
            resource_type=resource_type,
            duration=int(math.floor(float(duration))) if duration is not None else None,
        )
        release_buffer(path)
        logger.info("Uploaded %s to the media store as %s", path.name, asset.public_id)
        return asset

    async def _destroy_orphan(self, public_id: Optional[str], resource_type: str) -> None:
        """Remove an uploaded asset the store returned no URL for. Failures are logged."""
        if not public_id:
            logger.warning("Upload returned neither a URL nor a public id")
            return
        try:
            await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type,
                invalidate=True,
                **self._credentials,
            )
        except Exception as exc:
            logger.warning("Could not remove orphaned remote asset %s: %s", public_id, exc)

    async def remove(self, url: Optional[str]) -> None:
        """Delete the remote asset addressed by ``url``; empty URLs are a no-op."""
        if not url:
            return
        public_id = extract_public_id(url)
        if not public_id:
            raise DeleteFailed("Invalid public ID extraction from URL.")

        resource_type = resource_type_for_url(url)
        try:
            response: Dict[str, Any] = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type,
                invalidate=True,
                **self._credentials,
            )
        except Exception as exc:
            raise DeleteFailed(f"Media delete failed: {exc}") from exc

        result = str((response or {}).get("result", "")).lower()
        if result not in {"ok", "not found"}:
            raise DeleteFailed(f"Media delete failed: {result or 'unknown result'}")
        logger.info("Deleted %s (%s) from the media store", public_id, resource_type)


async def discard_remote(store: MediaStore, url: Optional[str]) -> bool:
    """Best-effort removal used off the primary path. Failures are logged."""
    try:
        await store.remove(url)
        return True
    except Exception as exc:
        logger.warning("Could not remove remote asset %s: %s", url, exc)
        return False


class MediaTransaction:
    """
    Compensating wrapper for requests that upload media and then persist.

    Usage::

        async with MediaTransaction(store) as tx:
            path = await tx.buffer(upload, "thumbnail")
            asset = await tx.transfer(path)
            ... persist ...
            tx.commit()

    Leaving the block with an exception removes every asset transferred in
    this transaction before the exception continues, logging removal errors
    instead of raising them. Local buffers are always released.
    """

    def __init__(self, store: MediaStore):
        self.store = store
        self._buffers: List[Path] = []
        self._transferred: List[RemoteAsset] = []

    async def __aenter__(self) -> "MediaTransaction":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc is not None:
                await self.rollback()
        finally:
            self.release_buffers()
        return False

    async def buffer(self, upload: UploadFile, field_name: str, kind: str = "image") -> Path:
        path = await save_upload_to_buffer(upload, field_name, kind)
        self._buffers.append(path)
        return path

    async def transfer(self, local_path: Path, resource_type: str = "image") -> RemoteAsset:
        asset = await self.store.transfer(local_path, resource_type)
        self._transferred.append(asset)
        return asset

    def commit(self) -> None:
        """Mark transferred assets as owned by a persisted record."""
        self._transferred.clear()

    async def rollback(self) -> None:
        assets, self._transferred = self._transferred, []
        for asset in reversed(assets):
            try:
                await self.store.remove(asset.url)
                logger.info("Rolled back remote asset %s", asset.public_id)
            except Exception as exc:
                logger.warning("Rollback of remote asset %s failed: %s", asset.url, exc)

    def release_buffers(self) -> None:
        buffers, self._buffers = self._buffers, []
        for path in buffers:
            if path.exists():
                release_buffer(path)


def get_media_store(request: Request) -> MediaStore:
    """FastAPI dependency returning the process-wide media store client."""
    store = getattr(request.app.state, "media_store", None)
    if store is None:
        store = MediaStore.from_settings()
        request.app.state.media_store = store
    return store

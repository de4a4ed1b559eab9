"""Video services: upload with compensation, replace, view counting."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from models.video import Video
from services.authorization import authorize
from services.errors import NotFound, ValidationFailed
from services.media_store import MediaStore, MediaTransaction, discard_remote
from services.projection import VIDEO_VIEW, project_one, project_with_owner
from services.uploads import has_upload
from services.validation import (
    get_or_404,
    is_blank,
    parse_bool,
    parse_resource_id,
    reject_blank_if_present,
    require_fields,
)

logger = logging.getLogger(__name__)


async def _video_view(db: AsyncSession, video_id: str) -> Dict[str, Any]:
    view = await project_one(db, VIDEO_VIEW, video_id)
    if view is None:
        raise NotFound("Video not found.")
    return view


async def create_video_service(
    db: AsyncSession,
    store: MediaStore,
    actor: User,
    *,
    title: Optional[str],
    description: Optional[str],
    is_published: Optional[str],
    video: Optional[UploadFile],
    thumbnail: Optional[UploadFile],
) -> Dict[str, Any]:
    """
    Upload the video and thumbnail, then persist the record.

    If persisting fails, both remote assets are removed before the original
    error propagates.
    """
    require_fields(
        "Please fill all the required fields.",
        title=title,
        description=description,
        isPublished=is_published,
        video=video.filename if has_upload(video) else None,
        thumbnail=thumbnail.filename if has_upload(thumbnail) else None,
    )
    published = parse_bool(is_published, "isPublished")

    async with MediaTransaction(store) as tx:
        video_path = await tx.buffer(video, "video", kind="video")
        thumbnail_path = await tx.buffer(thumbnail, "thumbnail", kind="image")

        video_asset = await tx.transfer(video_path, "video")
        thumbnail_asset = await tx.transfer(thumbnail_path, "image")

        record = Video(
            owner_id=actor.id,
            title=title.strip(),
            description=description.strip(),
            is_published=published,
            video_file=video_asset.url,
            thumbnail=thumbnail_asset.url,
            duration=video_asset.duration or 0,
            views=0,
        )
        db.add(record)
        await db.commit()
        tx.commit()

    logger.info("Created video %s for user %s", record.id, actor.id)
    return await _video_view(db, record.id)


async def update_video_service(
    db: AsyncSession,
    store: MediaStore,
    actor: User,
    video_id: str,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    is_published: Optional[str] = None,
    thumbnail: Optional[UploadFile] = None,
) -> Dict[str, Any]:
    video_id = parse_resource_id(video_id, "video")
    reject_blank_if_present(title=title, description=description)
    published = parse_bool(None if is_blank(is_published) else is_published, "isPublished")
    if title is None and description is None and published is None and not has_upload(thumbnail):
        raise ValidationFailed("Provide at least one field to update.")

    record = await get_or_404(db, Video, video_id, "video")
    authorize(actor, record.owner_id, "update this video")

    previous_thumbnail = None
    async with MediaTransaction(store) as tx:
        if has_upload(thumbnail):
            asset = await tx.transfer(await tx.buffer(thumbnail, "thumbnail", kind="image"))
            previous_thumbnail = record.thumbnail
            record.thumbnail = asset.url
        if title is not None:
            record.title = title.strip()
        if description is not None:
            record.description = description.strip()
        if published is not None:
            record.is_published = published
        await db.commit()
        tx.commit()

    if previous_thumbnail and previous_thumbnail != record.thumbnail:
        await discard_remote(store, previous_thumbnail)
    return await _video_view(db, record.id)


async def _delete_video_record(db: AsyncSession, store: MediaStore, record: Video) -> None:
    """
    Remove the video file, then the record.

    A failed video-file removal aborts with the record intact. Once the video
    file is gone the thumbnail removal is best-effort, so the record never
    outlives its video file.
    """
    await store.remove(record.video_file)
    await discard_remote(store, record.thumbnail)
    await db.delete(record)
    await db.commit()
    logger.info("Deleted video %s", record.id)


async def delete_video_service(db: AsyncSession, store: MediaStore, actor: User, video_id: str) -> None:
    video_id = parse_resource_id(video_id, "video")
    record = await get_or_404(db, Video, video_id, "video")
    authorize(actor, record.owner_id, "delete this video")
    await _delete_video_record(db, store, record)


async def admin_delete_video_service(db: AsyncSession, store: MediaStore, video_id: Optional[str]) -> None:
    video_id = parse_resource_id(video_id, "video")
    record = await get_or_404(db, Video, video_id, "video")
    await _delete_video_record(db, store, record)


async def get_video_service(db: AsyncSession, video_id: str) -> Dict[str, Any]:
    """Fetch a video, incrementing its view counter in the store on every call."""
    video_id = parse_resource_id(video_id, "video")
    result = await db.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(views=Video.views + 1)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        await db.rollback()
        raise NotFound("Video not found.")
    await db.commit()
    return await _video_view(db, video_id)


async def list_user_videos_service(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    user_id = parse_resource_id(user_id, "user")
    return await project_with_owner(
        db,
        VIDEO_VIEW,
        Video.owner_id == user_id,
        order_by=[Video.created_at.desc()],
    )


async def list_videos_service(db: AsyncSession) -> List[Dict[str, Any]]:
    return await project_with_owner(db, VIDEO_VIEW, order_by=[Video.created_at.desc()])

"""Video router."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user, require_admin
from services.api_response import api_response
from services.media_store import MediaStore, get_media_store
from services.videos import (
    admin_delete_video_service,
    create_video_service,
    delete_video_service,
    get_video_service,
    list_user_videos_service,
    list_videos_service,
    update_video_service,
)

router = APIRouter()


class AdminDeleteVideoRequest(BaseModel):
    videoId: Optional[str] = None


@router.post("/create")
async def create_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    isPublished: Optional[str] = Form(None),
    video: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    """Upload a video file and thumbnail and create the video record."""
    created = await create_video_service(
        db,
        store,
        user,
        title=title,
        description=description,
        is_published=isPublished,
        video=video,
        thumbnail=thumbnail,
    )
    return api_response(created, "Successfully video has been created.", status_code=201)


@router.delete("/delete/{video_id}")
async def delete_video(
    video_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    await delete_video_service(db, store, user, video_id)
    return api_response(None, "Successfully video has been deleted.")


@router.put("/update/{video_id}")
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    isPublished: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    updated = await update_video_service(
        db,
        store,
        user,
        video_id,
        title=title,
        description=description,
        is_published=isPublished,
        thumbnail=thumbnail,
    )
    return api_response(updated, "Successfully updated the video.")


@router.get("/get-video/{video_id}")
async def get_video(
    video_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Fetch one video. Every call increments its view counter."""
    return api_response(await get_video_service(db, video_id), "Successfully video has been fetched.")


@router.get("/get-user-videos/{user_id}")
async def get_user_videos(
    user_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await list_user_videos_service(db, user_id), "Successfully user videos has been fetched.")


@router.get("/")
async def get_all_videos(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await list_videos_service(db), "Successfully all videos has been fetched.")


@router.delete("/admin/delete-video")
async def admin_delete_video(
    request: AdminDeleteVideoRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    await admin_delete_video_service(db, store, request.videoId)
    return api_response(None, "Successfully video has been deleted by admin.")

"""Playlist router."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user
from services.api_response import api_response
from services.playlists import (
    add_video_to_playlist_service,
    create_playlist_service,
    delete_playlist_service,
    get_playlist_service,
    list_user_playlists_service,
    remove_video_from_playlist_service,
    update_playlist_service,
)

router = APIRouter()


class PlaylistRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


@router.post("/create")
async def create_playlist(
    request: PlaylistRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await create_playlist_service(db, user, request.name, request.description)
    return api_response(playlist, "Successfully playlist has been created.", status_code=201)


@router.delete("/delete/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_playlist_service(db, user, playlist_id)
    return api_response(None, "Successfully playlist has been deleted.")


@router.put("/update/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    request: PlaylistRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await update_playlist_service(db, user, playlist_id, request.name, request.description)
    return api_response(playlist, "Playlist has been successfully updated.")


@router.get("/get-playlist/{playlist_id}")
async def get_playlist(
    playlist_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await get_playlist_service(db, playlist_id), "Successfully specific playlist has been fetched.")


@router.get("/get-user-playlists/{user_id}")
async def get_user_playlists(
    user_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await list_user_playlists_service(db, user_id), "Successfully user playlist has been fetched.")


@router.post("/add-video/{playlist_id}/{video_id}")
async def add_video_to_playlist(
    playlist_id: str,
    video_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await add_video_to_playlist_service(db, user, playlist_id, video_id)
    return api_response(playlist, "Successfully video is added to the playlist.")


@router.delete("/remove-video/{playlist_id}/{video_id}")
async def remove_video_from_playlist(
    playlist_id: str,
    video_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await remove_video_from_playlist_service(db, user, playlist_id, video_id)
    return api_response(playlist, "Successfully video is removed from the playlist.")

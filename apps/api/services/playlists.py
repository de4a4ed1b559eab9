"""Playlist services. Membership changes are single-row inserts/deletes."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.playlist import Playlist, PlaylistVideo
from models.user import User
from models.video import Video
from services.authorization import authorize
from services.errors import NotFound, ValidationFailed
from services.projection import PLAYLIST_VIEW, project_with_owner
from services.validation import (
    get_or_404,
    parse_resource_id,
    reject_blank_if_present,
    require_fields,
)


async def _attach_videos(db: AsyncSession, playlists: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not playlists:
        return playlists
    ids = [item["_id"] for item in playlists]
    result = await db.execute(
        select(PlaylistVideo.playlist_id, PlaylistVideo.video_id)
        .where(PlaylistVideo.playlist_id.in_(ids))
        .order_by(PlaylistVideo.id.asc())
    )
    by_playlist: Dict[str, List[str]] = defaultdict(list)
    for playlist_id, video_id in result.all():
        by_playlist[playlist_id].append(video_id)
    for item in playlists:
        item["videos"] = by_playlist.get(item["_id"], [])
    return playlists


async def _playlist_view(db: AsyncSession, playlist_id: str) -> Dict[str, Any]:
    rows = await project_with_owner(db, PLAYLIST_VIEW, Playlist.id == playlist_id)
    if not rows:
        raise NotFound("Playlist not found.")
    return (await _attach_videos(db, rows))[0]


async def _load_for_mutation(db: AsyncSession, actor: User, playlist_id: str, action: str) -> Playlist:
    playlist = await get_or_404(db, Playlist, playlist_id, "playlist")
    authorize(actor, playlist.owner_id, action)
    return playlist


async def create_playlist_service(
    db: AsyncSession,
    actor: User,
    name: Optional[str],
    description: Optional[str],
) -> Dict[str, Any]:
    require_fields("Please fill all the fields.", name=name, description=description)

    playlist = Playlist(name=name.strip(), description=description.strip(), owner_id=actor.id)
    db.add(playlist)
    await db.commit()
    return await _playlist_view(db, playlist.id)


async def delete_playlist_service(db: AsyncSession, actor: User, playlist_id: str) -> None:
    playlist_id = parse_resource_id(playlist_id, "playlist")
    playlist = await _load_for_mutation(db, actor, playlist_id, "delete this playlist")

    await db.execute(delete(PlaylistVideo).where(PlaylistVideo.playlist_id == playlist.id))
    await db.delete(playlist)
    await db.commit()


async def update_playlist_service(
    db: AsyncSession,
    actor: User,
    playlist_id: str,
    name: Optional[str],
    description: Optional[str],
) -> Dict[str, Any]:
    playlist_id = parse_resource_id(playlist_id, "playlist")
    reject_blank_if_present("Please fill all the fields.", name=name, description=description)
    if name is None and description is None:
        raise ValidationFailed("Provide at least one field to update.")

    playlist = await _load_for_mutation(db, actor, playlist_id, "update this playlist")
    if name is not None:
        playlist.name = name.strip()
    if description is not None:
        playlist.description = description.strip()
    await db.commit()
    return await _playlist_view(db, playlist.id)


async def get_playlist_service(db: AsyncSession, playlist_id: str) -> Dict[str, Any]:
    return await _playlist_view(db, parse_resource_id(playlist_id, "playlist"))


async def list_user_playlists_service(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    user_id = parse_resource_id(user_id, "user")
    rows = await project_with_owner(
        db,
        PLAYLIST_VIEW,
        Playlist.owner_id == user_id,
        order_by=[Playlist.created_at.desc()],
    )
    return await _attach_videos(db, rows)


async def add_video_to_playlist_service(
    db: AsyncSession,
    actor: User,
    playlist_id: str,
    video_id: str,
) -> Dict[str, Any]:
    playlist_id = parse_resource_id(playlist_id, "playlist")
    video_id = parse_resource_id(video_id, "video")

    playlist = await _load_for_mutation(db, actor, playlist_id, "modify this playlist")
    await get_or_404(db, Video, video_id, "video")

    db.add(PlaylistVideo(playlist_id=playlist.id, video_id=video_id))
    await db.commit()
    return await _playlist_view(db, playlist.id)


async def remove_video_from_playlist_service(
    db: AsyncSession,
    actor: User,
    playlist_id: str,
    video_id: str,
) -> Dict[str, Any]:
    """Remove every occurrence of ``video_id``; absent videos are a no-op."""
    playlist_id = parse_resource_id(playlist_id, "playlist")
    video_id = parse_resource_id(video_id, "video")

    playlist = await _load_for_mutation(db, actor, playlist_id, "modify this playlist")
    await db.execute(
        delete(PlaylistVideo).where(
            PlaylistVideo.playlist_id == playlist.id,
            PlaylistVideo.video_id == video_id,
        )
    )
    await db.commit()
    return await _playlist_view(db, playlist.id)

"""Read-side projection joining an owner's public fields into owned resources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.playlist import Playlist
from models.tweet import Tweet
from models.user import User
from models.video import Video


OWNER_COLUMNS = {
    "username": User.username,
    "fullName": User.full_name,
    "avatar": User.avatar,
}


@dataclass(frozen=True)
class ResourceView:
    """Output key -> model attribute mapping for one owned resource type."""

    model: Any
    fields: Dict[str, str]


VIDEO_VIEW = ResourceView(
    Video,
    {
        "_id": "id",
        "owner": "owner_id",
        "title": "title",
        "description": "description",
        "isPublished": "is_published",
        "videoFile": "video_file",
        "thumbnail": "thumbnail",
        "duration": "duration",
        "views": "views",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    },
)

TWEET_VIEW = ResourceView(
    Tweet,
    {
        "_id": "id",
        "owner": "owner_id",
        "content": "content",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    },
)

PLAYLIST_VIEW = ResourceView(
    Playlist,
    {
        "_id": "id",
        "owner": "owner_id",
        "name": "name",
        "description": "description",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    },
)


async def project_with_owner(
    db: AsyncSession,
    view: ResourceView,
    *criteria: Any,
    order_by: Optional[Sequence[Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Select ``view`` rows matching ``criteria`` joined with their owner.

    Rows whose owner no longer exists are dropped, like an inner join.
    """
    model = view.model
    columns = [getattr(model, attr).label(f"r_{index}") for index, attr in enumerate(view.fields.values())]
    owner_columns = [column.label(f"o_{index}") for index, column in enumerate(OWNER_COLUMNS.values())]

    stmt = select(*columns, *owner_columns).join(User, User.id == model.owner_id)
    if criteria:
        stmt = stmt.where(*criteria)
    if order_by:
        stmt = stmt.order_by(*order_by)

    result = await db.execute(stmt)
    rows = result.all()

    keys = list(view.fields.keys())
    owner_keys = list(OWNER_COLUMNS.keys())
    projected: List[Dict[str, Any]] = []
    for row in rows:
        values = list(row)
        item = dict(zip(keys, values[: len(keys)]))
        item["ownerDetails"] = dict(zip(owner_keys, values[len(keys):]))
        projected.append(item)
    return projected


async def project_one(db: AsyncSession, view: ResourceView, resource_id: str) -> Optional[Dict[str, Any]]:
    rows = await project_with_owner(db, view, view.model.id == resource_id)
    return rows[0] if rows else None

"""Tweet services."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models.tweet import Tweet
from models.user import User
from services.authorization import authorize
from services.errors import NotFound
from services.projection import TWEET_VIEW, project_one, project_with_owner
from services.validation import get_or_404, parse_resource_id, require_fields


async def _tweet_view(db: AsyncSession, tweet_id: str) -> Dict[str, Any]:
    view = await project_one(db, TWEET_VIEW, tweet_id)
    if view is None:
        raise NotFound("Tweet not found.")
    return view


async def create_tweet_service(db: AsyncSession, actor: User, content: Optional[str]) -> Dict[str, Any]:
    require_fields("Content field is required.", content=content)

    tweet = Tweet(content=content.strip(), owner_id=actor.id)
    db.add(tweet)
    await db.commit()
    return await _tweet_view(db, tweet.id)


async def update_tweet_service(
    db: AsyncSession,
    actor: User,
    tweet_id: str,
    edited_content: Optional[str],
) -> Dict[str, Any]:
    tweet_id = parse_resource_id(tweet_id, "tweet")
    require_fields("Content field is required.", editedContent=edited_content)

    tweet = await get_or_404(db, Tweet, tweet_id, "tweet")
    authorize(actor, tweet.owner_id, "update this tweet")

    tweet.content = edited_content.strip()
    await db.commit()
    return await _tweet_view(db, tweet.id)


async def delete_tweet_service(db: AsyncSession, actor: User, tweet_id: str) -> None:
    tweet_id = parse_resource_id(tweet_id, "tweet")
    tweet = await get_or_404(db, Tweet, tweet_id, "tweet")
    authorize(actor, tweet.owner_id, "delete this tweet")

    await db.delete(tweet)
    await db.commit()


async def admin_delete_tweet_service(db: AsyncSession, tweet_id: Optional[str]) -> None:
    tweet_id = parse_resource_id(tweet_id, "tweet")
    tweet = await get_or_404(db, Tweet, tweet_id, "tweet")
    await db.delete(tweet)
    await db.commit()


async def get_tweet_service(db: AsyncSession, tweet_id: str) -> Dict[str, Any]:
    return await _tweet_view(db, parse_resource_id(tweet_id, "tweet"))


async def list_user_tweets_service(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    user_id = parse_resource_id(user_id, "user")
    return await project_with_owner(
        db,
        TWEET_VIEW,
        Tweet.owner_id == user_id,
        order_by=[Tweet.created_at.desc()],
    )


async def list_tweets_service(db: AsyncSession) -> List[Dict[str, Any]]:
    return await project_with_owner(db, TWEET_VIEW, order_by=[Tweet.created_at.desc()])

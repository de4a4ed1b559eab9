"""Tweet router."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user, require_admin
from services.api_response import api_response
from services.tweets import (
    admin_delete_tweet_service,
    create_tweet_service,
    delete_tweet_service,
    get_tweet_service,
    list_tweets_service,
    list_user_tweets_service,
    update_tweet_service,
)

router = APIRouter()


class CreateTweetRequest(BaseModel):
    content: Optional[str] = None


class UpdateTweetRequest(BaseModel):
    editedContent: Optional[str] = None


class AdminDeleteTweetRequest(BaseModel):
    tweetId: Optional[str] = None


@router.post("/create")
async def create_tweet(
    request: CreateTweetRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tweet = await create_tweet_service(db, user, request.content)
    return api_response(tweet, "Tweet created successfully.", status_code=201)


@router.delete("/delete/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_tweet_service(db, user, tweet_id)
    return api_response(None, "Tweet deleted successfully.")


@router.put("/update/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    request: UpdateTweetRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tweet = await update_tweet_service(db, user, tweet_id, request.editedContent)
    return api_response(tweet, "Tweet updated successfully.")


@router.get("/get-tweet/{tweet_id}")
async def get_tweet(
    tweet_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await get_tweet_service(db, tweet_id), "Tweet fetched successfully.")


@router.get("/get-user-tweets/{user_id}")
async def get_user_tweets(
    user_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await list_user_tweets_service(db, user_id), "User tweets fetched successfully.")


@router.get("/")
async def get_all_tweets(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await list_tweets_service(db), "All tweets fetched successfully.")


@router.delete("/admin/delete-tweet")
async def admin_delete_tweet(
    request: AdminDeleteTweetRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await admin_delete_tweet_service(db, request.tweetId)
    return api_response(None, "Tweet deleted successfully by admin.")

"""Identity registration, session and profile services."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.user import User
from services.errors import Conflict, NotFound, Unauthorized, ValidationFailed
from services.media_store import MediaStore, MediaTransaction, discard_remote
from services.session_token import (
    decode_refresh_token,
    hash_password,
    rotate_tokens,
    verify_password,
    verify_refresh_token,
)
from services.uploads import has_upload
from services.validation import (
    check_password_length,
    is_blank,
    normalize_email,
    require_fields,
)

logger = logging.getLogger(__name__)

IMAGE_FIELDS = {
    "avatar": ("avatar", "an avatar"),
    "coverImage": ("cover_image", "a cover"),
}


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return hash_password("vidshare-unknown-user")


def user_view(user: User) -> Dict[str, Any]:
    """Public identity fields. Never includes the password hash or refresh token."""
    return {
        "_id": user.id,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name,
        "avatar": user.avatar or "",
        "coverImage": user.cover_image or "",
        "role": user.role,
        "watchHistory": list(user.watch_history or []),
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
    }


async def _find_user(db: AsyncSession, *criteria: Any) -> Optional[User]:
    result = await db.execute(select(User).where(*criteria))
    return result.scalars().first()


async def register_user_service(
    db: AsyncSession,
    store: MediaStore,
    *,
    full_name: Optional[str],
    email: Optional[str],
    username: Optional[str],
    password: Optional[str],
    avatar: Optional[UploadFile] = None,
    cover_image: Optional[UploadFile] = None,
) -> Dict[str, Any]:
    require_fields(
        "Please fill the required inputs.",
        fullName=full_name,
        email=email,
        username=username,
        password=password,
    )
    normalized_email = normalize_email(email)
    normalized_username = username.strip().lower()
    check_password_length(password)

    existing = await _find_user(
        db,
        or_(User.username == normalized_username, User.email == normalized_email),
    )
    if existing:
        raise Conflict("User already exists.")

    async with MediaTransaction(store) as tx:
        avatar_url = ""
        cover_url = ""
        if has_upload(avatar):
            avatar_url = (await tx.transfer(await tx.buffer(avatar, "avatar"))).url
        if has_upload(cover_image):
            cover_url = (await tx.transfer(await tx.buffer(cover_image, "coverImage"))).url

        user = User(
            username=normalized_username,
            email=normalized_email,
            full_name=full_name.strip(),
            password=hash_password(password),
            avatar=avatar_url,
            cover_image=cover_url,
            role="user",
            watch_history=[],
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise Conflict("User already exists.") from exc
        tx.commit()

    logger.info("Registered user %s", user.id)
    return user_view(user)


async def login_user_service(
    db: AsyncSession,
    username: Optional[str],
    password: Optional[str],
) -> Tuple[User, Dict[str, str]]:
    require_fields("Please fill the required inputs.", username=username, password=password)

    user = await _find_user(db, User.username == username.strip().lower())
    if not user:
        # Unknown usernames cost one bcrypt check as well
        verify_password(password, _dummy_password_hash())
        raise Unauthorized("Invalid username or password.")
    if not verify_password(password, user.password):
        raise Unauthorized("Invalid username or password.")

    tokens = await rotate_tokens(db, user)
    return user, tokens


async def logout_user_service(db: AsyncSession, user: User) -> None:
    user.refresh_token = None
    await db.commit()


async def refresh_tokens_service(db: AsyncSession, incoming_token: Optional[str]) -> Dict[str, str]:
    """Exchange the current refresh token for a new access/refresh pair."""
    if is_blank(incoming_token):
        raise Unauthorized("Unauthorized access.")

    payload = decode_refresh_token(incoming_token)
    user = await _find_user(db, User.id == str(payload.get("sub")))
    if not user:
        raise Unauthorized("User not found.")

    verify_refresh_token(incoming_token, user.refresh_token)
    return await rotate_tokens(db, user)


async def update_user_details_service(
    db: AsyncSession,
    user: User,
    updated_full_name: Optional[str],
    updated_email: Optional[str],
) -> Dict[str, Any]:
    if is_blank(updated_full_name) and is_blank(updated_email):
        raise ValidationFailed("Input at least one field.")

    if not is_blank(updated_email):
        new_email = normalize_email(updated_email)
        if new_email == user.email:
            raise ValidationFailed("New email is the same as the current email.")
        taken = await _find_user(db, User.email == new_email, User.id != user.id)
        if taken:
            raise Conflict("Email is already in use.")
        user.email = new_email

    if not is_blank(updated_full_name):
        new_full_name = updated_full_name.strip()
        if new_full_name == user.full_name:
            raise ValidationFailed("New full name is the same as the current full name.")
        user.full_name = new_full_name

    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise Conflict("Email is already in use.") from exc
    return user_view(user)


async def change_password_service(
    db: AsyncSession,
    user: User,
    old_password: Optional[str],
    new_password: Optional[str],
) -> Dict[str, Any]:
    require_fields("Provide the content in the fields.", oldPassword=old_password, newPassword=new_password)
    if old_password == new_password:
        raise ValidationFailed("New password is the same as the old password.")
    check_password_length(new_password, field="newPassword")
    if not verify_password(old_password, user.password):
        raise ValidationFailed("Invalid password.")

    user.password = hash_password(new_password)
    await db.commit()
    return user_view(user)


async def replace_user_image_service(
    db: AsyncSession,
    store: MediaStore,
    user: User,
    upload: Optional[UploadFile],
    field: str,
) -> Dict[str, Any]:
    """
    Replace the avatar or cover image.

    The new image is transferred and persisted before the previous remote
    asset is removed, so a failed transfer never loses the current image.
    """
    attribute, label = IMAGE_FIELDS[field]
    if not has_upload(upload):
        raise ValidationFailed(f"Please provide {label} picture.")

    previous_url = getattr(user, attribute) or ""
    async with MediaTransaction(store) as tx:
        asset = await tx.transfer(await tx.buffer(upload, field))
        setattr(user, attribute, asset.url)
        await db.commit()
        tx.commit()

    if previous_url and previous_url != asset.url:
        await discard_remote(store, previous_url)
    return user_view(user)


async def list_users_service(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(User).order_by(User.created_at.asc()))
    return [user_view(user) for user in result.scalars().all()]


async def delete_user_service(db: AsyncSession, store: MediaStore, target: Optional[str]) -> Dict[str, Any]:
    """Admin removal of an identity by username. Owned records are not cascaded."""
    require_fields("Please mention the username.", target=target)

    user = await _find_user(db, User.username == target.strip().lower())
    if not user:
        raise NotFound("User not found.")

    deleted = user_view(user)
    media_urls = [url for url in (user.avatar, user.cover_image) if url]
    await db.delete(user)
    await db.commit()

    for url in media_urls:
        await discard_remote(store, url)

    logger.info("Admin deleted user %s", deleted["_id"])
    return {"deletedUser": deleted, "users": await list_users_service(db)}

"""
User router: registration, credential session, profile and admin endpoints.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from models.user import User
from routers.auth_scope import ACCESS_COOKIE, REFRESH_COOKIE, get_current_user, require_admin
from routers.rate_limit import rate_limit
from services.api_response import api_response
from services.media_store import MediaStore, get_media_store
from services.users import (
    change_password_service,
    delete_user_service,
    list_users_service,
    login_user_service,
    logout_user_service,
    refresh_tokens_service,
    register_user_service,
    replace_user_image_service,
    update_user_details_service,
    user_view,
)

router = APIRouter()


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    refreshToken: Optional[str] = None


class UpdateUserRequest(BaseModel):
    updatedFullName: Optional[str] = None
    updatedEmail: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    oldPassword: Optional[str] = None
    newPassword: Optional[str] = None


class DeleteUserRequest(BaseModel):
    target: Optional[str] = None


def _cookie_options() -> Dict[str, object]:
    return {
        "httponly": True,
        "secure": bool(settings.COOKIE_SECURE),
        "samesite": settings.COOKIE_SAMESITE,
        "path": "/",
    }


def _set_auth_cookies(response: JSONResponse, tokens: Dict[str, str]) -> JSONResponse:
    options = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE,
        tokens["accessToken"],
        max_age=int(settings.ACCESS_TOKEN_EXPIRY_MINUTES) * 60,
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens["refreshToken"],
        max_age=int(settings.REFRESH_TOKEN_EXPIRY_DAYS) * 86400,
        **options,
    )
    return response


def _clear_auth_cookies(response: JSONResponse) -> JSONResponse:
    options = _cookie_options()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, **options)
    return response


@router.post("/register")
async def register_user(
    fullName: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    coverImage: Optional[UploadFile] = File(None),
    _rate_limit: None = Depends(rate_limit("register", limit=20, window_seconds=3600)),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    """Create an account, uploading optional avatar and cover images."""
    user = await register_user_service(
        db,
        store,
        full_name=fullName,
        email=email,
        username=username,
        password=password,
        avatar=avatar,
        cover_image=coverImage,
    )
    return api_response(user, "User created successfully.", status_code=201)


@router.post("/login")
async def login_user(
    request: LoginRequest,
    _rate_limit: None = Depends(rate_limit("login", limit=30, window_seconds=900)),
    db: AsyncSession = Depends(get_db),
):
    user, tokens = await login_user_service(db, request.username, request.password)
    response = api_response(
        {"user": user_view(user), **tokens},
        "Successfully user has logged in.",
    )
    return _set_auth_cookies(response, tokens)


@router.post("/logout")
async def logout_user(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await logout_user_service(db, user)
    return _clear_auth_cookies(api_response({}, "Logout successfully."))


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    body: Optional[RefreshTokenRequest] = None,
    _rate_limit: None = Depends(rate_limit("refresh", limit=60, window_seconds=900)),
    db: AsyncSession = Depends(get_db),
):
    """Rotate the token pair. Reads the refresh cookie, then the JSON body."""
    incoming = request.cookies.get(REFRESH_COOKIE) or (body.refreshToken if body else None)
    tokens = await refresh_tokens_service(db, incoming)
    response = api_response(tokens, "Successfully refresh token and access token generated.")
    return _set_auth_cookies(response, tokens)


@router.get("/get-user")
async def get_user(user: User = Depends(get_current_user)):
    return api_response(user_view(user), "Fetch user successfully.")


@router.put("/update-user")
async def update_user(
    request: UpdateUserRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await update_user_details_service(db, user, request.updatedFullName, request.updatedEmail)
    return api_response(updated, "Successfully updated the user info.")


@router.put("/update-password")
async def update_password(
    request: UpdatePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await change_password_service(db, user, request.oldPassword, request.newPassword)
    return api_response(updated, "Successfully password changed.")


@router.put("/update-avatar")
async def update_avatar(
    updatedAvatar: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    updated = await replace_user_image_service(db, store, user, updatedAvatar, "avatar")
    return api_response(updated, "Avatar has been changed.")


@router.put("/update-cover-image")
async def update_cover_image(
    updatedCoverImage: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    updated = await replace_user_image_service(db, store, user, updatedCoverImage, "coverImage")
    return api_response(updated, "Cover Image has been changed.")


@router.get("/admin/all-users")
async def get_all_users(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return api_response(await list_users_service(db), "Fetched all users.")


@router.delete("/admin/delete-user")
async def delete_user(
    request: DeleteUserRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
):
    result = await delete_user_service(db, store, request.target)
    return api_response(result, "User deleted successfully.")

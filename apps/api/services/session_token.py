"""Password hashing and access/refresh token helpers."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import uuid

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.user import User
from services.errors import Unauthorized


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of ``plain``."""
    salt = bcrypt.gensalt(rounds=int(settings.BCRYPT_ROUNDS or 10))
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def _encode(claims: Dict[str, Any], secret: str, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update(
        {
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
    )
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def _decode(token: str, secret: str, expected_type: str) -> Dict[str, Any]:
    if not token:
        raise Unauthorized("Unauthorized request.")
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise Unauthorized("Invalid or expired token.") from exc

    if str(payload.get("type", "")).strip() != expected_type:
        raise Unauthorized("Invalid token type.")
    if not str(payload.get("sub", "")).strip():
        raise Unauthorized("Token missing subject.")
    return payload


def issue_access_token(user: User) -> str:
    """Short-lived token carrying the public identity claims."""
    claims = {
        "sub": user.id,
        "type": ACCESS_TOKEN_TYPE,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name,
    }
    ttl = timedelta(minutes=max(int(settings.ACCESS_TOKEN_EXPIRY_MINUTES), 1))
    return _encode(claims, settings.ACCESS_TOKEN_SECRET, ttl)


def issue_refresh_token(user: User) -> str:
    """Longer-lived token carrying only the identity id."""
    claims = {"sub": user.id, "type": REFRESH_TOKEN_TYPE}
    ttl = timedelta(days=max(int(settings.REFRESH_TOKEN_EXPIRY_DAYS), 1))
    return _encode(claims, settings.REFRESH_TOKEN_SECRET, ttl)


def decode_access_token(token: str) -> Dict[str, Any]:
    return _decode(token, settings.ACCESS_TOKEN_SECRET, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> Dict[str, Any]:
    return _decode(token, settings.REFRESH_TOKEN_SECRET, REFRESH_TOKEN_TYPE)


def verify_refresh_token(token: str, stored_value: Optional[str]) -> Dict[str, Any]:
    """
    Validate a refresh token against the value stored on its identity.

    Only the most recently issued refresh token is accepted; rotation or
    logout invalidates every earlier one.
    """
    payload = decode_refresh_token(token)
    if not stored_value or token != stored_value:
        raise Unauthorized("Refresh token is expired or used.")
    return payload


async def rotate_tokens(db: AsyncSession, user: User) -> Dict[str, str]:
    """Issue a new access/refresh pair and persist the refresh token."""
    access_token = issue_access_token(user)
    refresh_token = issue_refresh_token(user)
    user.refresh_token = refresh_token
    await db.commit()
    return {"accessToken": access_token, "refreshToken": refresh_token}

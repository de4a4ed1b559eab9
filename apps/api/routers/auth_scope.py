"""Authentication dependencies resolving the acting identity."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.user import User
from services.authorization import require_role
from services.errors import Unauthorized
from services.session_token import decode_access_token


auth_scheme = HTTPBearer(auto_error=False)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _access_token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    cookie_token = request.cookies.get(ACCESS_COOKIE)
    if cookie_token:
        return cookie_token
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the identity behind the access-token cookie or Bearer header."""
    token = _access_token_from_request(request, credentials)
    if not token:
        raise Unauthorized("Unauthorized request.")

    payload = decode_access_token(token)
    result = await db.execute(select(User).where(User.id == str(payload.get("sub"))))
    user = result.scalar_one_or_none()
    if not user:
        raise Unauthorized("Invalid authentication access.")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    require_role(user, "admin")
    return user

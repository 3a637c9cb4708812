"""
Password hashing (bcrypt), JWT issuing (PyJWT) and the auth dependencies
used by the routes.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.config import get_settings
from booking_api.core.exceptions import ForbiddenError, UnauthorizedError
from booking_api.db.session import get_db
from booking_api.models.user import User, UserRole

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    payload = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload["exp"] = expire
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid or expired token")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise UnauthorizedError("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == int(subject)))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    return user


async def get_current_user_id(user: User = Depends(get_current_user)) -> int:
    return user.id


def require_roles(*roles: UserRole):
    allowed = {role.value for role in roles}

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise ForbiddenError("Access denied. Insufficient permissions.")
        return user

    return dependency


require_admin = require_roles(UserRole.ADMIN)
require_organizer = require_roles(UserRole.ORGANIZER, UserRole.ADMIN)

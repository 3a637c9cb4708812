"""
Authentication service handling user registration and login.
"""

import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.config import get_settings
from booking_api.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError
from booking_api.core.logging import get_logger
from booking_api.core.security import hash_password, verify_password, create_access_token
from booking_api.models.user import User, UserRole
from booking_api.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role})


async def _create_user(db: AsyncSession, user_data: UserCreate, role: str) -> User:
    result = await db.execute(select(User.id).where(User.email == user_data.email))
    if result.scalar_one_or_none() is not None:
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise ConflictError("User already exists with this email")

    user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        role=role,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise ConflictError("User already exists with this email")

    logger.info("user_registered", user_id=user.id, email=user.email, role=role)
    return user


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user or organizer with a hashed password.
    Raises ConflictError if the email is already registered.
    """
    return await _create_user(db, user_data, user_data.role)


async def register_admin(db: AsyncSession, user_data: UserCreate, admin_key: Optional[str]) -> User:
    """Register an admin. Requires the shared ADMIN_REGISTRATION_KEY."""
    expected = get_settings().ADMIN_REGISTRATION_KEY
    if not admin_key or not secrets.compare_digest(admin_key, expected):
        logger.warning("admin_registration_denied", email=user_data.email)
        raise ForbiddenError("Invalid admin registration key")
    return await _create_user(db, user_data, UserRole.ADMIN.value)


async def authenticate_user(db: AsyncSession, login_data: UserLogin, admin_only: bool = False) -> User:
    """
    Check credentials and return the user.
    Raises 401 on bad credentials and 403 for inactive accounts or, with
    admin_only, for non-admins.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise UnauthorizedError("Invalid credentials")

    if not user.is_active:
        raise ForbiddenError("Account is deactivated")

    if admin_only and not user.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")

    logger.info("user_logged_in", user_id=user.id, role=user.role)
    return user

"""
Authentication endpoints: register, login and profile.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.security import get_current_user
from booking_api.db.session import get_db
from booking_api.models.user import User
from booking_api.schemas.common import APIResponse
from booking_api.schemas.user import UserCreate, UserResponse, UserLogin, Token
from booking_api.services import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_for(user: User) -> Token:
    return Token(access_token=auth_service.issue_token(user), user=UserResponse.model_validate(user))


@router.post("/register", response_model=APIResponse[Token], status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new account and receive a JWT access token."""
    user = await auth_service.register_user(db, user_data)
    return APIResponse(message="User registered successfully", data=_token_for(user))


@router.post("/login", response_model=APIResponse[Token])
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    user = await auth_service.authenticate_user(db, login_data)
    return APIResponse(message="Login successful", data=_token_for(user))


@router.post("/admin/login", response_model=APIResponse[Token])
async def admin_login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Login restricted to admin accounts."""
    user = await auth_service.authenticate_user(db, login_data, admin_only=True)
    return APIResponse(message="Login successful", data=_token_for(user))


@router.post("/register-admin", response_model=APIResponse[Token], status_code=status.HTTP_201_CREATED)
async def register_admin(
    user_data: UserCreate,
    x_admin_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Register an admin account. Requires the X-Admin-Key header."""
    user = await auth_service.register_admin(db, user_data, x_admin_key)
    return APIResponse(message="Admin registered successfully", data=_token_for(user))


@router.get("/profile", response_model=APIResponse[UserResponse])
async def profile(user: User = Depends(get_current_user)):
    return APIResponse(data=UserResponse.model_validate(user))

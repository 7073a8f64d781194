"""
Authentication endpoints.

Endpoints:
- POST /api/v1/auth/login - Login with username or email
- GET /api/v1/auth/me - Current account
- POST /api/v1/auth/change-password - Change password
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.db.base import get_db
from accredit.core.deps import get_current_user
from accredit.core.security import create_access_token, get_password_hash, verify_password
from accredit.models.user import User
from accredit.schemas.auth import UserLogin, UserResponse, TokenResponse, PasswordChange
from accredit.schemas.common import MessageResponse

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate with username or email and password."""
    identity = credentials.identity.strip()
    result = await db.execute(
        select(User).where(
            or_(User.username == identity, func.lower(User.email) == identity.lower())
        )
    )
    user = result.scalar_one_or_none()

    if user is None or not user.is_active or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to authenticate."
        )

    token = create_access_token(user.id, user.role.value)
    return TokenResponse(token=token, record=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not verify_password(data.oldPassword, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )
    if data.password != data.passwordConfirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match"
        )

    current_user.password_hash = get_password_hash(data.password)
    await db.commit()
    return MessageResponse(message="Password changed successfully")

"""
Authentication and user schemas.
"""
from pydantic import BaseModel, Field
from datetime import datetime

from accredit.models.user import UserRole


class UserLogin(BaseModel):
    """Login with username or email."""
    identity: str
    password: str


class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    name: str
    role: UserRole
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    token: str
    record: UserResponse


class PasswordChange(BaseModel):
    """Password change request."""
    oldPassword: str
    password: str = Field(..., min_length=8)
    passwordConfirm: str = Field(..., min_length=8)

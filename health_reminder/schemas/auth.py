"""Authentication schemas"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

_EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'


class RegisterRequest(BaseModel):
    """User registration schema"""
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=72)
    phone_number: Optional[str] = Field(None, max_length=32)
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = Field(None, max_length=20)

    @field_validator('email')
    @classmethod
    def email_lowercase(cls, v):
        """Emails are compared case-insensitively"""
        return v.strip().lower()


class LoginRequest(BaseModel):
    """User login schema"""
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh token exchange schema"""
    refresh_token: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    """User response schema"""
    id: int
    name: str
    email: str
    phone_number: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = None
    profile_picture_url: Optional[str] = None
    roles: List[str] = []
    enabled: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """Access + refresh token response"""
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserResponse

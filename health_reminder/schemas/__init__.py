"""Pydantic schemas for API validation"""

from health_reminder.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    RefreshTokenRequest,
    UserResponse,
    TokenResponse,
)
from health_reminder.schemas.response import APIResponse, ErrorResponse

__all__ = [
    "RegisterRequest", "LoginRequest", "RefreshTokenRequest", "UserResponse", "TokenResponse",
    "APIResponse", "ErrorResponse"
]

"""Authentication routes"""

from fastapi import APIRouter, Depends, status, Request
from sqlalchemy.orm import Session

from health_reminder.core.database import get_db
from health_reminder.config import settings
from health_reminder.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    RefreshTokenRequest,
    UserResponse,
)
from health_reminder.schemas.response import APIResponse
from health_reminder.services.auth_service import auth_service, to_user_response
from health_reminder.services.rate_limiter import rate_limiter
from health_reminder.api.deps import get_current_principal, get_current_user
from health_reminder.models.user import User
from health_reminder.core.exceptions import RateLimitExceededError
from health_reminder.core.principal import Principal

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user and open a session

    Returns:
        Access token, refresh token and the created user
    """
    tokens = auth_service.register(db, body)
    return APIResponse(message="Created successfully", data=tokens)


@router.post("/login", response_model=APIResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Login endpoint - authenticate user and return tokens

    Args:
        credentials: Email and password
        db: Database session
    """
    user_key = credentials.email.strip().lower()
    limits = [
        (settings.LOGIN_RATE_LIMIT_PER_MINUTE, 60),
        (settings.LOGIN_RATE_LIMIT_PER_HOUR, 3600),
    ]
    if not rate_limiter.allow_all(f"login:{_client_ip(request)}:{user_key}", limits):
        raise RateLimitExceededError("Too many login attempts. Please try again later.")

    tokens = auth_service.login(db, credentials.email, credentials.password)
    return APIResponse(message="Success", data=tokens)


@router.post("/refresh", response_model=APIResponse)
def refresh_token(
    body: RefreshTokenRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Exchange a refresh token for a new access token

    The refresh token in the response is the one that was presented.
    """
    limits = [
        (settings.REFRESH_RATE_LIMIT_PER_MINUTE, 60),
        (settings.REFRESH_RATE_LIMIT_PER_HOUR, 3600),
    ]
    if not rate_limiter.allow_all(f"refresh:{_client_ip(request)}", limits):
        raise RateLimitExceededError("Too many refresh attempts. Slow down.")

    tokens = auth_service.refresh(db, body.refresh_token)
    return APIResponse(message="Success", data=tokens)


@router.post("/logout", response_model=APIResponse, status_code=status.HTTP_200_OK)
def logout(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """
    Logout endpoint - revoke the caller's refresh token

    Args:
        principal: Caller resolved from the bearer access token
    """
    auth_service.logout(db, principal.subject)
    return APIResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Get current user information

    Args:
        current_user: Current authenticated user
    """
    return to_user_response(current_user)

"""API dependencies - authentication and authorization"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from health_reminder.core.database import get_db
from health_reminder.core.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    AuthenticationError,
    UserNotFoundError,
)
from health_reminder.core.principal import Principal
from health_reminder.core.security import access_token_codec
from health_reminder.models.user import User
from health_reminder.services.user_service import user_service

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from the bearer access token

    Args:
        credentials: HTTP Bearer credentials
        db: Database session

    Returns:
        Current user

    Raises:
        AuthenticationError: Missing token, or the token's specific failure
            (expired, malformed, bad signature)
        UserNotFoundError: If the token subject has no user record
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")

    claims = access_token_codec.verify(credentials.credentials).unwrap()

    user = user_service.find_by_email(db, claims.subject)
    if not user:
        raise UserNotFoundError()

    principal = Principal.from_user(user)
    if not principal.enabled:
        raise AccountDisabledError()
    if principal.locked:
        raise AccountLockedError()

    return user


def get_current_principal(
    current_user: User = Depends(get_current_user)
) -> Principal:
    """Principal view of the current user"""
    return Principal.from_user(current_user)

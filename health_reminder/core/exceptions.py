"""Custom exception classes for the application"""

from enum import Enum
from typing import Optional, Dict, Any


class AuthErrorKind(str, Enum):
    """Distinct, user-visible authentication failure categories"""
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    TOKEN_REVOKED = "token_revoked"
    TOKEN_EXPIRED = "token_expired"
    EXPIRED_ACCESS_TOKEN = "expired_access_token"
    MALFORMED_ACCESS_TOKEN = "malformed_access_token"
    INVALID_SIGNATURE = "invalid_signature"
    USER_NOT_FOUND = "user_not_found"
    ACCOUNT_DISABLED = "account_disabled"
    ACCOUNT_LOCKED = "account_locked"


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    code: Optional[str] = None

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""

    kind: Optional[AuthErrorKind] = None

    def __init__(self, message: str = "Authentication failed", status_code: int = 401,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=status_code, details=details)
        if self.kind is not None:
            self.code = self.kind.value


class InvalidCredentialsError(AuthenticationError):
    """Invalid email or password"""
    kind = AuthErrorKind.INVALID_CREDENTIALS

    def __init__(self):
        super().__init__("Invalid email or password")


class InvalidTokenError(AuthenticationError):
    """Refresh token is unknown"""
    kind = AuthErrorKind.INVALID_TOKEN

    def __init__(self):
        super().__init__("Invalid refresh token")


class TokenRevokedError(AuthenticationError):
    """Refresh token was revoked by logout"""
    kind = AuthErrorKind.TOKEN_REVOKED

    def __init__(self):
        super().__init__("Refresh token has been revoked")


class TokenExpiredError(AuthenticationError):
    """Refresh token is past its expiry"""
    kind = AuthErrorKind.TOKEN_EXPIRED

    def __init__(self):
        super().__init__("Refresh token has expired")


class ExpiredAccessTokenError(AuthenticationError):
    """JWT access token has expired"""
    kind = AuthErrorKind.EXPIRED_ACCESS_TOKEN

    def __init__(self):
        super().__init__("JWT token has expired")


class MalformedAccessTokenError(AuthenticationError):
    """JWT access token cannot be parsed"""
    kind = AuthErrorKind.MALFORMED_ACCESS_TOKEN

    def __init__(self):
        super().__init__("Invalid JWT token")


class InvalidSignatureError(AuthenticationError):
    """JWT signature does not verify"""
    kind = AuthErrorKind.INVALID_SIGNATURE

    def __init__(self):
        super().__init__("Invalid JWT signature")


class AccountDisabledError(AuthenticationError):
    """User account is disabled"""
    kind = AuthErrorKind.ACCOUNT_DISABLED

    def __init__(self):
        super().__init__("User account is disabled", status_code=403)


class AccountLockedError(AuthenticationError):
    """User account is locked"""
    kind = AuthErrorKind.ACCOUNT_LOCKED

    def __init__(self):
        super().__init__("User account is locked", status_code=403)


class UserNotFoundError(AuthenticationError):
    """Authenticated subject has no user record"""
    kind = AuthErrorKind.USER_NOT_FOUND

    def __init__(self):
        super().__init__("User not found", status_code=404)


# Resource Errors
class ResourceAlreadyExistsError(BaseAPIException):
    """Resource already exists"""
    def __init__(self, resource: str):
        super().__init__(f"{resource} already exists", status_code=409)


class DuplicateEmailError(ResourceAlreadyExistsError):
    """Email already registered"""
    kind = AuthErrorKind.DUPLICATE_EMAIL
    code = AuthErrorKind.DUPLICATE_EMAIL.value

    def __init__(self, email: str):
        super().__init__("Email")
        self.message = "Email already registered"
        self.details = {"email": email}


# System Errors
class ConcurrentModificationError(BaseAPIException):
    """Concurrent modification detected"""
    def __init__(self, message: str = "Resource was modified by another request"):
        super().__init__(message, status_code=409)


class RateLimitExceededError(BaseAPIException):
    """Rate limit exceeded"""
    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message, status_code=429)


_ERRORS_BY_KIND = {
    AuthErrorKind.DUPLICATE_EMAIL: DuplicateEmailError,
    AuthErrorKind.INVALID_CREDENTIALS: InvalidCredentialsError,
    AuthErrorKind.INVALID_TOKEN: InvalidTokenError,
    AuthErrorKind.TOKEN_REVOKED: TokenRevokedError,
    AuthErrorKind.TOKEN_EXPIRED: TokenExpiredError,
    AuthErrorKind.EXPIRED_ACCESS_TOKEN: ExpiredAccessTokenError,
    AuthErrorKind.MALFORMED_ACCESS_TOKEN: MalformedAccessTokenError,
    AuthErrorKind.INVALID_SIGNATURE: InvalidSignatureError,
    AuthErrorKind.USER_NOT_FOUND: UserNotFoundError,
    AuthErrorKind.ACCOUNT_DISABLED: AccountDisabledError,
    AuthErrorKind.ACCOUNT_LOCKED: AccountLockedError,
}


def error_for(kind: AuthErrorKind) -> BaseAPIException:
    """Build the exception for an error kind (DUPLICATE_EMAIL needs its email and is excluded)"""
    if kind is AuthErrorKind.DUPLICATE_EMAIL:
        raise ValueError("DuplicateEmailError must be built with the conflicting email")
    return _ERRORS_BY_KIND[kind]()

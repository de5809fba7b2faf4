"""Auth service - register, login, refresh and logout over a user's session"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from health_reminder.core.database import transaction
from health_reminder.core.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    AuthErrorKind,
    DuplicateEmailError,
    InvalidCredentialsError,
    UserNotFoundError,
    error_for,
)
from health_reminder.core.interfaces import RoleLookup, UserLookup
from health_reminder.core.metrics import SESSION_EVENTS
from health_reminder.core.principal import Principal
from health_reminder.core.security import (
    AccessTokenCodec,
    access_token_codec,
    get_password_hash,
    verify_password,
)
from health_reminder.models.security import RefreshToken
from health_reminder.models.user import User
from health_reminder.schemas.auth import RegisterRequest, TokenResponse, UserResponse
from health_reminder.services.refresh_token_store import RefreshTokenStore, refresh_token_store
from health_reminder.services.role_service import role_service
from health_reminder.services.user_service import normalize_email, user_service

logger = logging.getLogger(__name__)


class AuthService:
    """
    Session lifecycle: Anonymous -> Authenticated(active) -> Authenticated(revoked).

    Each public method is one unit of work. Refresh-token records are only
    touched inside `transaction(db)`, so every exit path either commits or
    rolls back.

    Refresh hands back the same refresh-token string instead of
    rotating it; only login and registration mint a new one.
    """

    def __init__(
        self,
        codec: AccessTokenCodec,
        store: RefreshTokenStore,
        users: UserLookup,
        roles: RoleLookup,
    ):
        self.codec = codec
        self.store = store
        self.users = users
        self.roles = roles

    def register(self, db: Session, request: RegisterRequest) -> TokenResponse:
        """
        Create an enabled user with the default role and open a session

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        email = normalize_email(request.email)
        logger.info(f"Registering new user with email: {email}")

        try:
            with transaction(db):
                if self.users.exists_by_email(db, email):
                    raise DuplicateEmailError(email)

                user = User(
                    name=request.name,
                    email=email,
                    password_hash=get_password_hash(request.password),
                    phone_number=request.phone_number,
                    date_of_birth=request.date_of_birth,
                    gender=request.gender,
                    is_enabled=True,
                    is_locked=False,
                )
                user.roles.append(self.roles.find_or_create_default(db))
                user = self.users.save(db, user)

                access_token = self._issue_access_token(user)
                record = self.store.issue(db, user)
                response = self._token_response(user, access_token, record.token)
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email.
            raise DuplicateEmailError(email)

        SESSION_EVENTS.labels("register").inc()
        logger.info(f"User registered successfully: {email}")
        return response

    def login(self, db: Session, email: str, password: str) -> TokenResponse:
        """
        Verify credentials and replace the user's refresh token

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountDisabledError / AccountLockedError: Correct password, unusable account
        """
        email = normalize_email(email)
        logger.info(f"User login attempt: {email}")

        with transaction(db):
            user = self.users.find_by_email(db, email)
            if not user or not verify_password(password, user.password_hash):
                logger.warning(f"Failed login for: {email}")
                raise InvalidCredentialsError()

            principal = Principal.from_user(user)
            if not principal.enabled:
                raise AccountDisabledError()
            if principal.locked:
                raise AccountLockedError()

            access_token = self._issue_access_token(user, principal)
            record = self.store.replace_for_user(db, user)
            response = self._token_response(user, access_token, record.token)

        SESSION_EVENTS.labels("login").inc()
        logger.info(f"User logged in successfully: {email}")
        return response

    def refresh(self, db: Session, refresh_token: str) -> TokenResponse:
        """
        Mint a new access token from a live refresh token

        An expired record is deleted and that deletion is committed before
        TokenExpiredError propagates. Disabled or locked accounts are refused
        as at login; their record is left in place.
        """
        logger.info("Refreshing access token")

        with transaction(db):
            failure, user = self._check_refresh_token(db, refresh_token)
            if failure is None:
                access_token = self._issue_access_token(user)
                response = self._token_response(user, access_token, refresh_token)

        if failure is not None:
            logger.warning(f"Refresh rejected: {failure.value}")
            raise error_for(failure)

        SESSION_EVENTS.labels("refresh").inc()
        logger.info(f"Access token refreshed for user: {user.email}")
        return response

    def logout(self, db: Session, subject_email: str) -> None:
        """
        Revoke the user's refresh token if one is still active

        Idempotent: a user without a session, or with an already revoked
        one, logs out successfully.

        Raises:
            UserNotFoundError: If the subject no longer exists
        """
        email = normalize_email(subject_email)
        logger.info(f"Logging out user: {email}")

        with transaction(db):
            user = self.users.find_by_email(db, email)
            if not user:
                raise UserNotFoundError()

            record = self.store.find_by_user(db, user)
            if record is not None and not record.revoked:
                self.store.revoke(db, record)

        SESSION_EVENTS.labels("logout").inc()
        logger.info(f"User logged out successfully: {email}")

    def _check_refresh_token(
        self, db: Session, refresh_token: str
    ) -> Tuple[Optional[AuthErrorKind], Optional[User]]:
        record: Optional[RefreshToken] = self.store.find_by_token(db, refresh_token)
        if record is None:
            return AuthErrorKind.INVALID_TOKEN, None
        if record.revoked:
            return AuthErrorKind.TOKEN_REVOKED, None
        if self.store.is_expired(record):
            self.store.delete_expired(db, record)
            return AuthErrorKind.TOKEN_EXPIRED, None

        user = self.users.get_by_id(db, record.user_id)
        if user is None:
            # Do not reveal that the account is gone.
            return AuthErrorKind.INVALID_TOKEN, None

        principal = Principal.from_user(user)
        if not principal.enabled:
            return AuthErrorKind.ACCOUNT_DISABLED, None
        if principal.locked:
            return AuthErrorKind.ACCOUNT_LOCKED, None
        return None, user

    def _issue_access_token(self, user: User, principal: Optional[Principal] = None) -> str:
        principal = principal or Principal.from_user(user)
        return self.codec.issue(
            principal.subject,
            {"uid": principal.user_id, "roles": sorted(principal.authorities)},
        )

    def _token_response(self, user: User, access_token: str, refresh_token: str) -> TokenResponse:
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=self.codec.expires_in,
            user=to_user_response(user),
        )


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        phone_number=user.phone_number,
        date_of_birth=user.date_of_birth,
        gender=user.gender,
        profile_picture_url=user.profile_picture_url,
        roles=user.role_names,
        enabled=bool(user.is_enabled),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


auth_service = AuthService(access_token_codec, refresh_token_store, user_service, role_service)

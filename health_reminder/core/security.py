"""Security utilities - password hashing, access token codec, refresh token values"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import bcrypt
from jose import jwt
from jose.exceptions import JWTClaimsError, JWTError

from health_reminder.config import Settings, settings
from health_reminder.core.exceptions import AuthErrorKind, error_for

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input.
_BCRYPT_MAX_BYTES = 72

ACCESS_TOKEN_TYPE = "access"
_RESERVED_CLAIMS = ("sub", "iat", "exp", "jti", "typ", "iss")


def _encode_password(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches
    """
    try:
        return bcrypt.checkpw(
            _encode_password(plain_password),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password
        rounds: Work factor, defaults to BCRYPT_ROUNDS

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        _encode_password(password),
        bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    ).decode("utf-8")


def generate_refresh_token() -> str:
    """Opaque refresh token value (256 bits of randomness)"""
    return secrets.token_urlsafe(32)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AccessTokenConfig:
    """Signing material and lifetime for access tokens, fixed at startup"""

    secret_key: str
    algorithm: str = "HS256"
    ttl: timedelta = timedelta(minutes=60)
    issuer: str = "health-reminder"

    @classmethod
    def from_settings(cls, source: Settings) -> "AccessTokenConfig":
        return cls(
            secret_key=source.SECRET_KEY,
            algorithm=source.ALGORITHM,
            ttl=source.access_token_ttl,
            issuer=source.JWT_ISSUER,
        )


@dataclass(frozen=True)
class AccessTokenClaims:
    subject: str
    claims: Mapping[str, Any] = field(default_factory=dict)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.claims["exp"], tz=timezone.utc)


@dataclass(frozen=True)
class AccessTokenCheck:
    """Outcome of verifying an access token: claims or the reason it was rejected"""

    claims: Optional[AccessTokenClaims] = None
    error: Optional[AuthErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.claims is not None

    def unwrap(self) -> AccessTokenClaims:
        if self.ok:
            return self.claims
        raise error_for(self.error or AuthErrorKind.MALFORMED_ACCESS_TOKEN)


class AccessTokenCodec:
    """Issue and verify signed, time-limited bearer tokens"""

    def __init__(self, config: AccessTokenConfig, clock: Callable[[], datetime] = utcnow):
        self._config = config
        self._clock = clock

    @property
    def expires_in(self) -> int:
        """Access token lifetime in seconds"""
        return int(self._config.ttl.total_seconds())

    def issue(self, subject: str, extra_claims: Optional[Dict[str, Any]] = None) -> str:
        """
        Create a signed access token for subject.

        Reserved claims (sub, iat, exp, jti, typ, iss) always come from the
        codec and cannot be overridden through extra_claims.
        """
        issued_at = int(self._clock().timestamp())
        payload: Dict[str, Any] = {
            key: value for key, value in (extra_claims or {}).items()
            if key not in _RESERVED_CLAIMS
        }
        payload.update({
            "sub": str(subject),
            "iat": issued_at,
            "exp": issued_at + self.expires_in,
            "jti": secrets.token_urlsafe(16),
            "typ": ACCESS_TOKEN_TYPE,
            "iss": self._config.issuer,
        })
        return jwt.encode(payload, self._config.secret_key, algorithm=self._config.algorithm)

    def verify(self, token: str) -> AccessTokenCheck:
        """
        Verify structure, signature, claims (issuer, type) and expiry, in that order.

        A token checked at exactly its exp instant is rejected.
        """
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError:
            return AccessTokenCheck(error=AuthErrorKind.MALFORMED_ACCESS_TOKEN)

        try:
            payload = jwt.decode(
                token,
                self._config.secret_key,
                algorithms=[self._config.algorithm],
                issuer=self._config.issuer,
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTClaimsError:
            return AccessTokenCheck(error=AuthErrorKind.MALFORMED_ACCESS_TOKEN)
        except JWTError:
            return AccessTokenCheck(error=AuthErrorKind.INVALID_SIGNATURE)

        subject = payload.get("sub")
        exp = payload.get("exp")
        if (
            not isinstance(subject, str)
            or not subject
            or isinstance(exp, bool)
            or not isinstance(exp, (int, float))
            or payload.get("typ") != ACCESS_TOKEN_TYPE
        ):
            return AccessTokenCheck(error=AuthErrorKind.MALFORMED_ACCESS_TOKEN)

        if self._clock().timestamp() >= exp:
            return AccessTokenCheck(error=AuthErrorKind.EXPIRED_ACCESS_TOKEN)

        return AccessTokenCheck(claims=AccessTokenClaims(subject=subject, claims=payload))

    def subject_of(self, token: str) -> Optional[str]:
        """Read the subject without verifying anything. Not an authentication check."""
        try:
            subject = jwt.get_unverified_claims(token).get("sub")
        except JWTError:
            return None
        return subject if isinstance(subject, str) else None


access_token_codec = AccessTokenCodec(AccessTokenConfig.from_settings(settings))

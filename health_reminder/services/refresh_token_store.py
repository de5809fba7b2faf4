"""Refresh token persistence: issue, lookup, revocation and lazy expiry cleanup."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from health_reminder.config import Settings, settings
from health_reminder.core.exceptions import ConcurrentModificationError
from health_reminder.core.security import generate_refresh_token, utcnow
from health_reminder.models.security import RefreshToken
from health_reminder.models.user import User

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    """
    Refresh-token records, one row per user at most.

    None of these methods commit; they flush inside the caller's unit of
    work. Lookups return None rather than raising when nothing matches.
    """

    def __init__(
        self,
        ttl: timedelta,
        *,
        replace_attempts: int = 3,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = ttl
        self.replace_attempts = max(1, replace_attempts)
        self._clock = clock

    @classmethod
    def from_settings(cls, source: Settings) -> "RefreshTokenStore":
        return cls(
            source.refresh_token_ttl,
            replace_attempts=source.REFRESH_TOKEN_REPLACE_ATTEMPTS,
        )

    @staticmethod
    def _naive_utc(dt: datetime) -> datetime:
        if dt.tzinfo is None:
            return dt
        return dt.astimezone(timezone.utc).replace(tzinfo=None)

    def _now(self) -> datetime:
        return self._naive_utc(self._clock())

    def is_expired(self, record: RefreshToken) -> bool:
        return self._naive_utc(record.expires_at) < self._now()

    def is_live(self, record: RefreshToken) -> bool:
        return not record.revoked and not self.is_expired(record)

    def issue(self, db: Session, user: User) -> RefreshToken:
        record = RefreshToken(
            user=user,
            token=generate_refresh_token(),
            expires_at=self._now() + self.ttl,
            revoked=False,
        )
        db.add(record)
        db.flush()
        return record

    @staticmethod
    def find_by_token(db: Session, token: str) -> Optional[RefreshToken]:
        if not token:
            return None
        return db.query(RefreshToken).filter(RefreshToken.token == token).first()

    @staticmethod
    def find_by_user(db: Session, user: User) -> Optional[RefreshToken]:
        return db.query(RefreshToken).filter(RefreshToken.user_id == user.id).first()

    @staticmethod
    def revoke(db: Session, record: RefreshToken) -> RefreshToken:
        if not record.revoked:
            record.revoked = True
            db.flush()
        return record

    @staticmethod
    def delete_expired(db: Session, record: RefreshToken) -> None:
        db.delete(record)
        db.flush()

    def replace_for_user(self, db: Session, user: User) -> RefreshToken:
        """
        Drop whatever record the user has and issue a fresh one.

        Delete and insert share a SAVEPOINT. The unique index on user_id
        rejects the insert when a concurrent login committed its own record
        first; the savepoint is then rolled back and the swap retried against
        the now-visible row.
        """
        for attempt in range(1, self.replace_attempts + 1):
            try:
                with db.begin_nested():
                    existing = self.find_by_user(db, user)
                    if existing is not None:
                        db.delete(existing)
                        db.flush()
                    record = self.issue(db, user)
                return record
            except IntegrityError:
                logger.warning(
                    "Concurrent refresh token replacement for user %s (attempt %d/%d)",
                    user.id,
                    attempt,
                    self.replace_attempts,
                )
        raise ConcurrentModificationError("Another login for this account is in progress")


refresh_token_store = RefreshTokenStore.from_settings(settings)

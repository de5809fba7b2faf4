"""Collaborator interfaces consumed by the session manager"""

from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy.orm import Session

from health_reminder.models.role import Role
from health_reminder.models.user import User


class UserLookup(Protocol):
    """Identity persistence the auth core reads from (and writes to on register)."""

    def find_by_email(self, db: Session, email: str) -> Optional[User]: ...

    def exists_by_email(self, db: Session, email: str) -> bool: ...

    def get_by_id(self, db: Session, user_id: int) -> Optional[User]: ...

    def save(self, db: Session, user: User) -> User: ...


class RoleLookup(Protocol):
    def find_or_create_default(self, db: Session) -> Role: ...

"""Authenticated principal view of a user"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, TYPE_CHECKING

if TYPE_CHECKING:
    from health_reminder.models.user import User


@dataclass(frozen=True)
class Principal:
    """
    The parts of a user that authentication and authorization look at.

    The ORM entity stays a plain record; anything that needs to decide
    whether a caller may act goes through this adapter instead.
    """

    subject: str
    user_id: int
    enabled: bool
    locked: bool
    authorities: FrozenSet[str]

    @classmethod
    def from_user(cls, user: "User") -> "Principal":
        return cls(
            subject=user.email,
            user_id=user.id,
            enabled=bool(user.is_enabled),
            locked=bool(user.is_locked),
            authorities=frozenset(role.name for role in user.roles),
        )

    @property
    def can_authenticate(self) -> bool:
        return self.enabled and not self.locked

    def has_authority(self, name: str) -> bool:
        return name in self.authorities

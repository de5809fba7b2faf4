"""Database models"""

from health_reminder.models.role import Role, user_roles
from health_reminder.models.user import User
from health_reminder.models.security import RefreshToken

__all__ = ["Role", "user_roles", "User", "RefreshToken"]

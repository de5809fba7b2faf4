"""Role service - default role resolution"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
from health_reminder.config import settings
from health_reminder.models.role import Role
import logging

logger = logging.getLogger(__name__)


class RoleService:
    """Service for roles granted at registration"""

    def __init__(self, default_role: str):
        self.default_role = default_role

    @staticmethod
    def find_by_name(db: Session, name: str) -> Optional[Role]:
        return db.query(Role).filter(Role.name == name).first()

    def find_or_create_default(self, db: Session) -> Role:
        """
        Get the default role, creating it on first use

        A concurrent creator winning the unique constraint is resolved by
        re-reading the role it committed.
        """
        role = self.find_by_name(db, self.default_role)
        if role:
            return role

        try:
            with db.begin_nested():
                role = Role(name=self.default_role, description="Default role for registered users")
                db.add(role)
        except IntegrityError:
            role = self.find_by_name(db, self.default_role)
            if role is None:
                raise
            return role

        logger.info(f"Created default role: {role.name}")
        return role


role_service = RoleService(settings.DEFAULT_ROLE)

"""User service - identity lookups backing authentication"""

from sqlalchemy.orm import Session
from typing import Optional
from health_reminder.models.user import User
import logging

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Service for user identity records"""

    @staticmethod
    def find_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by (case-insensitive) email"""
        return db.query(User).filter(User.email == normalize_email(email)).first()

    @staticmethod
    def exists_by_email(db: Session, email: str) -> bool:
        """Check whether an email is already registered"""
        return db.query(User.id).filter(User.email == normalize_email(email)).first() is not None

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.get(User, user_id)

    @staticmethod
    def save(db: Session, user: User) -> User:
        """
        Persist user inside the caller's transaction

        Args:
            db: Database session
            user: New or modified user

        Returns:
            The flushed user (with its ID assigned)
        """
        user.email = normalize_email(user.email)
        db.add(user)
        db.flush()
        logger.info(f"Saved user: {user.email} (id: {user.id})")
        return user


# Singleton instance
user_service = UserService()

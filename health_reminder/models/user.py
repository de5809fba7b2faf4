"""User model"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from health_reminder.core.database import Base
from health_reminder.models.role import user_roles


class User(Base):
    """User identity used for authentication"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    phone_number = Column(String(32))
    date_of_birth = Column(DateTime(timezone=True))
    gender = Column(String(20))
    profile_picture_url = Column(String(512))
    is_enabled = Column(Boolean, default=True, nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    roles = relationship("Role", secondary=user_roles, lazy="selectin")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def role_names(self):
        return sorted(role.name for role in self.roles)

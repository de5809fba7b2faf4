"""Role model"""

from sqlalchemy import Column, Integer, String, ForeignKey, Table
from health_reminder.core.database import Base


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    """Named authority granted to users (e.g. ROLE_USER, ROLE_ADMIN)"""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"

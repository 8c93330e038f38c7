"""User model and user-role association"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Table, Text
from sqlalchemy.orm import relationship
import enum

from hms_api.database import Base


class UserType(str, enum.Enum):
    """Account types for RBAC"""
    MASTER_ADMIN = "MASTER_ADMIN"
    PROPERTY_ADMIN = "PROPERTY_ADMIN"
    STAFF = "STAFF"


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """Console users, bound to at most one property"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True)

    # Profile
    full_name = Column(String(120), nullable=False)
    email = Column(String(254), unique=True, nullable=True)
    phone = Column(String(32), nullable=True)

    # Account type
    user_type = Column(Enum(UserType, name="user_type"), nullable=False, default=UserType.STAFF)

    # Authentication (nullable for passwordless staff accounts)
    password_hash = Column(String(255), nullable=True)

    # Status
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime)
    email_verified_at = Column(DateTime)

    # Current valid refresh token
    refresh_token = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    property = relationship("Property", back_populates="users")
    roles = relationship("Role", secondary=user_roles, back_populates="users")

    def is_master_admin(self) -> bool:
        return self.user_type == UserType.MASTER_ADMIN

    def permission_codes(self) -> set:
        """Codes granted through all assigned roles (roles and permissions must be loaded)"""
        return {permission.code for role in self.roles for permission in role.permissions}

    def has_permission(self, code: str) -> bool:
        """Master Admin holds every permission; others need a role granting the code"""
        if self.is_master_admin():
            return True
        return code in self.permission_codes()

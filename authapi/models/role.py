"""Role and Permission models for RBAC."""

import re

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Table, func
from sqlalchemy.orm import validates
from authapi.core.exceptions import ValidationError
from authapi.db.base import Base

PERMISSION_NAME_PATTERN = re.compile(r"^[a-z]+-(create|modify|get|update|delete)$")
ROLE_NAME_PATTERN = re.compile(r"^[A-Z][a-zA-Z\s]*$")

# Composite primary key keeps a role's permission set free of duplicates
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Permission(Base):
    """Named right of the form ``<resource>-<action>``."""
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, nullable=True)  # user id
    updated_by = Column(Integer, nullable=True)  # user id
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @validates("name")
    def validate_name(self, key, value):
        if not PERMISSION_NAME_PATTERN.match(value or ""):
            raise ValidationError(f"Invalid permission name '{value}'")
        return value


class Role(Base):
    """System role granting a set of permissions."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, nullable=True)  # user id
    updated_by = Column(Integer, nullable=True)  # user id
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @validates("name")
    def validate_name(self, key, value):
        if not ROLE_NAME_PATTERN.match(value or ""):
            raise ValidationError(f"Invalid role name '{value}'")
        return value

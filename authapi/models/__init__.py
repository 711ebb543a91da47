"""Models package: import all models so metadata.create_all can discover them."""

from authapi.models.role import Role, Permission, role_permissions
from authapi.models.user import User
from authapi.models.token import Token, TokenType
from authapi.models.audit_log import AuditLog

__all__ = [
    "Role", "Permission", "role_permissions",
    "User", "Token", "TokenType", "AuditLog",
]

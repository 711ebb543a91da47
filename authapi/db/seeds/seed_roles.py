"""Seed default permissions and roles into the database."""

from typing import List

from sqlalchemy.orm import Session

from authapi.core.config import settings
from authapi.repositories.role_repository import role_repository

SEED_RESOURCES = ["user", "role", "permission", "audit"]
SEED_ACTIONS = ["create", "get", "modify", "delete"]


def default_permission_names() -> List[str]:
    return [f"{resource}-{action}" for resource in SEED_RESOURCES for action in SEED_ACTIONS]


def seed_permissions(db: Session) -> None:
    """Insert the ``<resource>-<action>`` permissions that are missing."""
    created = 0
    for name in default_permission_names():
        if role_repository.get_permission_by_name(db, name) is None:
            role_repository.create_permission(db, name=name)
            created += 1
    print(f"✅ Seeded {created} permissions ({len(default_permission_names())} defined)")


def seed_roles(db: Session) -> None:
    """Create the admin role with every permission and the empty default role."""
    admin = role_repository.get_role_by_name(db, settings.ADMIN_ROLE_NAME)
    if admin is None:
        admin = role_repository.create_role(db, name=settings.ADMIN_ROLE_NAME)
    permission_ids = []
    for name in default_permission_names():
        permission = role_repository.get_permission_by_name(db, name)
        if permission is not None:
            permission_ids.append(permission.id)
    # Keep permissions added to the admin role by hand
    existing = role_repository.get_permission_ids(db, admin.id)
    role_repository.set_role_permissions(db, admin.id, existing + permission_ids)

    if role_repository.get_role_by_name(db, settings.DEFAULT_ROLE_NAME) is None:
        role_repository.create_role(db, name=settings.DEFAULT_ROLE_NAME)

    print(f"✅ Seeded roles '{settings.ADMIN_ROLE_NAME}' and '{settings.DEFAULT_ROLE_NAME}'")

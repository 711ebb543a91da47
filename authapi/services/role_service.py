"""Role resolution, the permission gate, and role/permission administration."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from authapi.core.config import Settings
from authapi.core.exceptions import (
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from authapi.models.role import Permission, Role
from authapi.models.user import User
from authapi.repositories.role_repository import role_repository
from authapi.repositories.user_repository import user_repository
from authapi.services.cache_service import CacheService

logger = logging.getLogger(__name__)

ROLE_CACHE_PREFIX = "authapi:role:"


@dataclass
class ResolvedPermission:
    id: int
    name: str
    is_active: bool


@dataclass
class ResolvedRole:
    """A role with its permission objects populated, ordered by permission id."""
    id: int
    name: str
    is_active: bool
    permissions: List[ResolvedPermission] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedRole":
        return cls(
            id=data["id"],
            name=data["name"],
            is_active=data["is_active"],
            permissions=[ResolvedPermission(**p) for p in data.get("permissions", [])],
        )


class RoleResolver:
    """Expands a role reference into its permissions and answers access checks.

    Resolution returns every referenced permission, active or not. Only the
    access check looks at ``is_active``: an inactive role grants nothing and
    inactive permissions are ignored.
    """

    def __init__(self, settings: Settings, cache: CacheService):
        self._settings = settings
        self._cache = cache

    @staticmethod
    def _cache_key(role_id: int) -> str:
        return f"{ROLE_CACHE_PREFIX}{role_id}"

    def resolve(self, db: Session, role_id: Optional[int]) -> Optional[ResolvedRole]:
        if role_id is None:
            return None

        cached = self._cache.get_json(self._cache_key(role_id))
        if cached:
            return ResolvedRole.from_dict(cached)

        role = role_repository.get_role(db, role_id)
        if role is None:
            return None

        permission_ids = role_repository.get_permission_ids(db, role.id)
        by_id = role_repository.get_permissions(db, permission_ids)
        resolved = ResolvedRole(
            id=role.id,
            name=role.name,
            is_active=role.is_active,
            permissions=[
                ResolvedPermission(id=p.id, name=p.name, is_active=p.is_active)
                for p in (by_id.get(pid) for pid in permission_ids)
                if p is not None
            ],
        )
        self._cache.set_json(
            self._cache_key(role_id), resolved.to_dict(), self._settings.ROLE_CACHE_TTL_SECONDS
        )
        return resolved

    @staticmethod
    def has_required_right(role: Optional[ResolvedRole], required_rights: Iterable[str]) -> bool:
        """True when any required right is granted by an active permission of an active role."""
        if role is None or not role.is_active:
            return False
        granted = {p.name for p in role.permissions if p.is_active}
        return any(right in granted for right in required_rights)

    def is_authorized(
        self,
        db: Session,
        user: User,
        required_rights: Iterable[str],
        target_user_id: Optional[int] = None,
    ) -> bool:
        """Permission gate with the self-access override for ``/users/{user_id}`` routes."""
        required_rights = list(required_rights)
        if not required_rights:
            return True
        if self.has_required_right(self.resolve(db, user.role_id), required_rights):
            return True
        return target_user_id is not None and target_user_id == user.id

    def invalidate(self, role_id: Optional[int] = None) -> None:
        if role_id is None:
            self._cache.invalidate_pattern(f"{ROLE_CACHE_PREFIX}*")
        else:
            self._cache.delete(self._cache_key(role_id))


class RoleService:
    """Role CRUD. Every mutation drops the cached resolution."""

    def __init__(self, resolver: RoleResolver):
        self._resolver = resolver

    def get(self, db: Session, role_id: int) -> Role:
        role = role_repository.get_role(db, role_id)
        if not role:
            raise ResourceNotFoundError("Role not found.")
        return role

    def get_resolved(self, db: Session, role_id: int) -> ResolvedRole:
        self.get(db, role_id)
        return self._resolver.resolve(db, role_id)

    def list_resolved(self, db: Session, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        result = role_repository.list_roles(db, page, page_size)
        result["roles"] = [self._resolver.resolve(db, role.id) for role in result["roles"]]
        return result

    @staticmethod
    def _check_permissions_exist(db: Session, permission_ids: List[int]) -> None:
        found = role_repository.get_permissions(db, permission_ids)
        missing = sorted(set(permission_ids) - set(found))
        if missing:
            raise ValidationError(f"Unknown permission ids: {missing}")

    def create(
        self,
        db: Session,
        actor: Optional[User],
        name: str,
        permission_ids: Optional[List[int]] = None,
        is_active: bool = True,
    ) -> ResolvedRole:
        if role_repository.get_role_by_name(db, name):
            raise ResourceConflictError("Role name already exists. Please use a different name.")
        permission_ids = permission_ids or []
        self._check_permissions_exist(db, permission_ids)

        role = role_repository.create_role(
            db, name=name, is_active=is_active, created_by=actor.id if actor else None
        )
        role_repository.set_role_permissions(db, role.id, permission_ids)
        logger.info(f"Role '{role.name}' created with {len(set(permission_ids))} permissions")
        return self._resolver.resolve(db, role.id)

    def update(
        self,
        db: Session,
        actor: Optional[User],
        role_id: int,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
        permission_ids: Optional[List[int]] = None,
    ) -> ResolvedRole:
        role = self.get(db, role_id)
        fields: Dict[str, Any] = {}
        if name is not None and name != role.name:
            if role_repository.get_role_by_name(db, name):
                raise ResourceConflictError("Role name already exists. Please use a different name.")
            fields["name"] = name
        if is_active is not None:
            fields["is_active"] = is_active
        if permission_ids is not None:
            self._check_permissions_exist(db, permission_ids)

        role_repository.update_role(db, role, actor.id if actor else None, **fields)
        if permission_ids is not None:
            role_repository.set_role_permissions(db, role.id, permission_ids)
        self._resolver.invalidate(role.id)
        return self._resolver.resolve(db, role.id)

    def delete(self, db: Session, role_id: int) -> None:
        role = self.get(db, role_id)
        if user_repository.role_in_use(db, role.id):
            raise ResourceConflictError("Role is assigned to one or more users and cannot be deleted.")
        role_repository.delete_role(db, role)
        self._resolver.invalidate(role_id)


class PermissionService:
    """Permission CRUD. A permission change can alter any role, so all cached roles are dropped."""

    def __init__(self, resolver: RoleResolver):
        self._resolver = resolver

    def get(self, db: Session, permission_id: int) -> Permission:
        permission = role_repository.get_permission(db, permission_id)
        if not permission:
            raise ResourceNotFoundError("Permission not found.")
        return permission

    def list_permissions(self, db: Session, page: int = 1, page_size: int = 20, is_active: Optional[bool] = None):
        return role_repository.list_permissions(db, page, page_size, is_active)

    def create(self, db: Session, actor: Optional[User], name: str, is_active: bool = True) -> Permission:
        if role_repository.get_permission_by_name(db, name):
            raise ResourceConflictError("Permission name already exists. Please use a different name.")
        return role_repository.create_permission(
            db, name=name, is_active=is_active, created_by=actor.id if actor else None
        )

    def update(
        self,
        db: Session,
        actor: Optional[User],
        permission_id: int,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Permission:
        permission = self.get(db, permission_id)
        fields: Dict[str, Any] = {}
        if name is not None and name != permission.name:
            if role_repository.get_permission_by_name(db, name):
                raise ResourceConflictError("Permission name already exists. Please use a different name.")
            fields["name"] = name
        if is_active is not None:
            fields["is_active"] = is_active
        permission = role_repository.update_permission(db, permission, actor.id if actor else None, **fields)
        self._resolver.invalidate()
        return permission

    def delete(self, db: Session, permission_id: int) -> None:
        permission = self.get(db, permission_id)
        role_repository.delete_permission(db, permission)
        self._resolver.invalidate()

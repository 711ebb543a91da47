"""Repository for roles, permissions and the role -> permission association."""

from typing import Dict, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from authapi.models.role import Permission, Role, role_permissions


class RoleRepository:
    """Plain lookups; joining roles to permissions happens in the resolver."""

    # ---- Roles ----
    @staticmethod
    def get_role(db: Session, role_id: int) -> Optional[Role]:
        return db.get(Role, role_id)

    @staticmethod
    def get_role_by_name(db: Session, name: str) -> Optional[Role]:
        return db.execute(select(Role).where(Role.name == name)).scalar_one_or_none()

    @staticmethod
    def list_roles(db: Session, page: int = 1, page_size: int = 20):
        total = db.query(Role).count()
        roles = (
            db.query(Role)
            .order_by(Role.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"roles": roles, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def create_role(db: Session, name: str, is_active: bool = True, created_by: Optional[int] = None) -> Role:
        role = Role(name=name, is_active=is_active, created_by=created_by)
        db.add(role)
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def update_role(db: Session, role: Role, updated_by: Optional[int], **fields) -> Role:
        for key, value in fields.items():
            setattr(role, key, value)
        role.updated_by = updated_by
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def delete_role(db: Session, role: Role) -> None:
        db.execute(delete(role_permissions).where(role_permissions.c.role_id == role.id))
        db.delete(role)
        db.commit()

    # ---- Association ----
    @staticmethod
    def get_permission_ids(db: Session, role_id: int) -> List[int]:
        rows = db.execute(
            select(role_permissions.c.permission_id)
            .where(role_permissions.c.role_id == role_id)
            .order_by(role_permissions.c.permission_id)
        )
        return [row[0] for row in rows]

    @staticmethod
    def set_role_permissions(db: Session, role_id: int, permission_ids: List[int]) -> None:
        """Replace the role's permission set; duplicate ids collapse to one."""
        unique_ids = list(dict.fromkeys(permission_ids))
        db.execute(delete(role_permissions).where(role_permissions.c.role_id == role_id))
        if unique_ids:
            db.execute(
                insert(role_permissions),
                [{"role_id": role_id, "permission_id": pid} for pid in unique_ids],
            )
        db.commit()

    # ---- Permissions ----
    @staticmethod
    def get_permission(db: Session, permission_id: int) -> Optional[Permission]:
        return db.get(Permission, permission_id)

    @staticmethod
    def get_permission_by_name(db: Session, name: str) -> Optional[Permission]:
        return db.execute(select(Permission).where(Permission.name == name)).scalar_one_or_none()

    @staticmethod
    def get_permissions(db: Session, permission_ids: List[int]) -> Dict[int, Permission]:
        if not permission_ids:
            return {}
        rows = db.execute(select(Permission).where(Permission.id.in_(permission_ids))).scalars()
        return {permission.id: permission for permission in rows}

    @staticmethod
    def list_permissions(db: Session, page: int = 1, page_size: int = 20, is_active: Optional[bool] = None):
        query = db.query(Permission)
        if is_active is not None:
            query = query.filter(Permission.is_active.is_(is_active))
        total = query.count()
        permissions = (
            query.order_by(Permission.name)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"permissions": permissions, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def create_permission(
        db: Session, name: str, is_active: bool = True, created_by: Optional[int] = None
    ) -> Permission:
        permission = Permission(name=name, is_active=is_active, created_by=created_by)
        db.add(permission)
        db.commit()
        db.refresh(permission)
        return permission

    @staticmethod
    def update_permission(db: Session, permission: Permission, updated_by: Optional[int], **fields) -> Permission:
        for key, value in fields.items():
            setattr(permission, key, value)
        permission.updated_by = updated_by
        db.commit()
        db.refresh(permission)
        return permission

    @staticmethod
    def delete_permission(db: Session, permission: Permission) -> None:
        db.execute(delete(role_permissions).where(role_permissions.c.permission_id == permission.id))
        db.delete(permission)
        db.commit()


role_repository = RoleRepository()

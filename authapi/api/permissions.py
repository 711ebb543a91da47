"""Permissions API router: permission CRUD."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from authapi.db.session import get_db
from authapi.dependencies import RequirePermissions, get_permission_service
from authapi.models.user import User
from authapi.schemas.schemas import (
    MessageResponse, PermissionCreate, PermissionDetailOut, PermissionListResponse, PermissionUpdate,
)
from authapi.services.audit_service import AuditAction, audit_service
from authapi.services.role_service import PermissionService

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.post("", response_model=PermissionDetailOut, status_code=status.HTTP_201_CREATED)
def create_permission(
    body: PermissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    permissions: PermissionService = Depends(get_permission_service),
    actor: User = Depends(RequirePermissions("permission-create", allow_self=False)),
):
    permission = permissions.create(db, actor, body.name, body.is_active)
    audit_service.admin_change(
        db, request, actor, AuditAction.PERMISSION_CREATED, "permission", permission.id,
        new_value={"name": permission.name, "is_active": permission.is_active},
    )
    return PermissionDetailOut.model_validate(permission)


@router.get("", response_model=PermissionListResponse)
def list_permissions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: Session = Depends(get_db),
    permissions: PermissionService = Depends(get_permission_service),
    actor: User = Depends(RequirePermissions("permission-get", allow_self=False)),
):
    result = permissions.list_permissions(db, page, page_size, is_active)
    result["permissions"] = [PermissionDetailOut.model_validate(p) for p in result["permissions"]]
    return result


@router.get("/{permission_id}", response_model=PermissionDetailOut)
def get_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    permissions: PermissionService = Depends(get_permission_service),
    actor: User = Depends(RequirePermissions("permission-get", allow_self=False)),
):
    return PermissionDetailOut.model_validate(permissions.get(db, permission_id))


@router.patch("/{permission_id}", response_model=PermissionDetailOut)
def update_permission(
    permission_id: int,
    body: PermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    permissions: PermissionService = Depends(get_permission_service),
    actor: User = Depends(RequirePermissions("permission-modify", allow_self=False)),
):
    before = permissions.get(db, permission_id)
    old_value = {"name": before.name, "is_active": before.is_active}
    permission = permissions.update(db, actor, permission_id, name=body.name, is_active=body.is_active)
    audit_service.admin_change(
        db, request, actor, AuditAction.PERMISSION_UPDATED, "permission", permission.id,
        old_value=old_value,
        new_value={"name": permission.name, "is_active": permission.is_active},
    )
    return PermissionDetailOut.model_validate(permission)


@router.delete("/{permission_id}", response_model=MessageResponse)
def delete_permission(
    permission_id: int,
    request: Request,
    db: Session = Depends(get_db),
    permissions: PermissionService = Depends(get_permission_service),
    actor: User = Depends(RequirePermissions("permission-delete", allow_self=False)),
):
    permissions.delete(db, permission_id)
    audit_service.admin_change(db, request, actor, AuditAction.PERMISSION_DELETED, "permission", permission_id)
    return MessageResponse(message="Permission deleted successfully.")

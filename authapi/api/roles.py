"""Roles API router: role CRUD with populated permissions."""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from authapi.db.session import get_db
from authapi.dependencies import RequirePermissions, get_role_service
from authapi.models.user import User
from authapi.schemas.schemas import MessageResponse, RoleCreate, RoleListResponse, RoleOut, RoleUpdate
from authapi.services.audit_service import AuditAction, audit_service
from authapi.services.role_service import RoleService

router = APIRouter(prefix="/roles", tags=["roles"])


@router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    roles: RoleService = Depends(get_role_service),
    actor: User = Depends(RequirePermissions("role-create", allow_self=False)),
):
    role = roles.create(db, actor, body.name, body.permission_ids, body.is_active)
    audit_service.admin_change(
        db, request, actor, AuditAction.ROLE_CREATED, "role", role.id,
        new_value=role.to_dict(),
    )
    return RoleOut.model_validate(role)


@router.get("", response_model=RoleListResponse)
def list_roles(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    roles: RoleService = Depends(get_role_service),
    actor: User = Depends(RequirePermissions("role-get", allow_self=False)),
):
    result = roles.list_resolved(db, page, page_size)
    result["roles"] = [RoleOut.model_validate(r) for r in result["roles"]]
    return result


@router.get("/{role_id}", response_model=RoleOut)
def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    roles: RoleService = Depends(get_role_service),
    actor: User = Depends(RequirePermissions("role-get", allow_self=False)),
):
    return RoleOut.model_validate(roles.get_resolved(db, role_id))


@router.patch("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    roles: RoleService = Depends(get_role_service),
    actor: User = Depends(RequirePermissions("role-modify", allow_self=False)),
):
    """Rename, (de)activate, or replace the permission set of a role."""
    before = roles.get_resolved(db, role_id).to_dict()
    role = roles.update(
        db, actor, role_id,
        name=body.name,
        is_active=body.is_active,
        permission_ids=body.permission_ids,
    )
    audit_service.admin_change(
        db, request, actor, AuditAction.ROLE_UPDATED, "role", role.id,
        old_value=before,
        new_value=role.to_dict(),
    )
    return RoleOut.model_validate(role)


@router.delete("/{role_id}", response_model=MessageResponse)
def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    roles: RoleService = Depends(get_role_service),
    actor: User = Depends(RequirePermissions("role-delete", allow_self=False)),
):
    roles.delete(db, role_id)
    audit_service.admin_change(db, request, actor, AuditAction.ROLE_DELETED, "role", role_id)
    return MessageResponse(message="Role deleted successfully.")

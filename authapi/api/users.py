"""Users API router: list, get, update and delete user accounts."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from authapi.db.session import get_db
from authapi.dependencies import RequirePermissions, get_user_service
from authapi.models.user import User
from authapi.schemas.schemas import MessageResponse, UserAdminOut, UserListResponse, UserUpdateRequest
from authapi.services.audit_service import AuditAction, audit_service
from authapi.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    actor: User = Depends(RequirePermissions("user-get")),
):
    """List users, newest first."""
    result = users.list_users(db, page, page_size)
    return {
        "users": [UserAdminOut.model_validate(u) for u in result["users"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    }


@router.get("/{user_id}", response_model=UserAdminOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    actor: User = Depends(RequirePermissions("user-get")),
):
    """Get one user. Users may always read their own record."""
    return UserAdminOut.model_validate(users.get(db, user_id))


@router.patch("/{user_id}", response_model=UserAdminOut)
def update_user(
    user_id: int,
    body: UserUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    actor: User = Depends(RequirePermissions("user-modify")),
):
    """Update name, email, password or role. Changing the role always needs ``user-modify``."""
    before = users.get(db, user_id)
    old_value = {"name": before.name, "email": before.email, "role_id": before.role_id}
    user = users.update(
        db, actor, user_id,
        name=body.name,
        email=body.email,
        password=body.password,
        role_id=body.role_id,
    )
    audit_service.admin_change(
        db, request, actor, AuditAction.USER_UPDATED, "user", user.id,
        old_value=old_value,
        new_value=body.model_dump(exclude_none=True, exclude={"password"}),
    )
    return UserAdminOut.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    actor: User = Depends(RequirePermissions("user-delete")),
):
    """Delete a user and all of their tokens."""
    actor_id, actor_email = actor.id, actor.email
    users.delete(db, user_id)
    audit_service.record(
        db, AuditAction.USER_DELETED, "user", resource_id=user_id,
        actor_id=None if actor_id == user_id else actor_id,
        actor_email=actor_email,
        request=request,
    )
    return MessageResponse(message="User deleted successfully.")

"""Admin API router: audit trail and dependency health."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authapi.db.session import get_db
from authapi.dependencies import RequirePermissions, ServiceContainer, get_container
from authapi.models.user import User
from authapi.schemas.schemas import AuditLogListResponse, AuditLogOut
from authapi.services.audit_service import audit_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit", response_model=AuditLogListResponse)
def get_audit_logs(
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: User = Depends(RequirePermissions("audit-get", allow_self=False)),
):
    """Query audit logs, newest first. ``action`` matches as a prefix."""
    result = audit_service.query_logs(
        db,
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        page=page,
        page_size=page_size,
    )
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    }


@router.get("/health")
def system_health(
    db: Session = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
    actor: User = Depends(RequirePermissions("audit-get", allow_self=False)),
):
    """System health check (database, Redis)."""
    health = {"status": "healthy", "services": {}}

    try:
        db.execute(text("SELECT 1"))
        health["services"]["database"] = "ok"
    except SQLAlchemyError:
        health["services"]["database"] = "error"
        health["status"] = "degraded"

    if not container.settings.CACHE_ENABLED:
        health["services"]["redis"] = "disabled"
    elif container.cache.health_check():
        health["services"]["redis"] = "ok"
    else:
        health["services"]["redis"] = "unreachable"
        health["status"] = "degraded"

    return health

"""Audit service: append-only trail of authentication and RBAC events."""

import json
from datetime import datetime
from typing import Any, Optional, Tuple

from fastapi import Request
from sqlalchemy.orm import Session

from authapi.models.audit_log import AuditLog
from authapi.models.user import User


class AuditAction:
    """Action names written to ``audit_logs.action``."""

    REGISTERED = "user.registered"
    LOGIN = "user.login"
    LOGIN_FAILED = "user.login_failed"
    LOCKED = "user.locked"
    LOGOUT = "user.logout"
    PASSWORD_RESET = "user.password_reset"
    EMAIL_VERIFIED = "user.email_verified"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"
    ROLE_CREATED = "role.created"
    ROLE_UPDATED = "role.updated"
    ROLE_DELETED = "role.deleted"
    PERMISSION_CREATED = "permission.created"
    PERMISSION_UPDATED = "permission.updated"
    PERMISSION_DELETED = "permission.deleted"


def _client_info(request: Optional[Request]) -> Tuple[Optional[str], Optional[str]]:
    if request is None:
        return None, None
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent", "")[:500]


def _dump(value: Any) -> Optional[str]:
    return json.dumps(value, default=str) if value else None


class AuditService:
    """Writes one row per event and commits it immediately.

    Account events (``user_event``, ``failed_login``, ``account_locked``) are
    recorded with the account itself as actor. Admin mutations go through
    ``admin_change`` with the acting user and before/after values.
    """

    @staticmethod
    def record(
        db: Session,
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        actor_id: Optional[int] = None,
        actor_email: Optional[str] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        request: Optional[Request] = None,
    ) -> AuditLog:
        ip, user_agent = _client_info(request)
        entry = AuditLog(
            actor_id=actor_id,
            actor_email=actor_email,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_value_json=_dump(old_value),
            new_value_json=_dump(new_value),
            ip_address=ip,
            user_agent=user_agent,
        )
        db.add(entry)
        db.commit()
        return entry

    # ---- Account events ----
    def user_event(
        self,
        db: Session,
        action: str,
        user_id: int,
        email: Optional[str] = None,
        request: Optional[Request] = None,
        **details: Any,
    ) -> AuditLog:
        return self.record(
            db, action, "user", resource_id=user_id,
            actor_id=user_id, actor_email=email,
            new_value=details or None, request=request,
        )

    def failed_login(self, db: Session, user: User, attempts_left: int) -> AuditLog:
        return self.user_event(db, AuditAction.LOGIN_FAILED, user.id, user.email, attempts_left=attempts_left)

    def account_locked(self, db: Session, user: User, lock_until: datetime) -> AuditLog:
        return self.user_event(db, AuditAction.LOCKED, user.id, user.email, lock_duration=lock_until)

    # ---- Admin mutations ----
    def admin_change(
        self,
        db: Session,
        request: Request,
        actor: Optional[User],
        action: str,
        resource_type: str,
        resource_id: Any,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
    ) -> AuditLog:
        return self.record(
            db, action, resource_type, resource_id=resource_id,
            actor_id=actor.id if actor else None,
            actor_email=actor.email if actor else None,
            old_value=old_value, new_value=new_value, request=request,
        )

    @staticmethod
    def query_logs(
        db: Session,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ):
        """Newest first. ``action`` matches as a prefix, so ``user.`` selects every account event."""
        query = db.query(AuditLog)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action.startswith(action, autoescape=True))
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if resource_id:
            query = query.filter(AuditLog.resource_id == resource_id)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"logs": logs, "total": total, "page": page, "page_size": page_size}


audit_service = AuditService()

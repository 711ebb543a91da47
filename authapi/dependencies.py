"""Service wiring and the FastAPI dependencies that hand it to routers."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from authapi.core.config import Settings
from authapi.core.exceptions import ForbiddenError, UnauthorizedError
from authapi.core.security import extract_bearer, security_scheme
from authapi.db.session import get_db
from authapi.models.token import TokenType
from authapi.models.user import User
from authapi.repositories.user_repository import user_repository
from authapi.services.auth_service import AuthService
from authapi.services.cache_service import CacheService
from authapi.services.interfaces import Notifier
from authapi.services.notification_service import EmailNotifier
from authapi.services.role_service import PermissionService, RoleResolver, RoleService
from authapi.services.token_service import TokenService
from authapi.services.user_service import UserService


@dataclass
class ServiceContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    cache: CacheService
    notifier: Notifier
    token_service: TokenService
    role_resolver: RoleResolver
    auth_service: AuthService
    user_service: UserService
    role_service: RoleService
    permission_service: PermissionService


def build_container(
    settings: Settings,
    notifier: Optional[Notifier] = None,
    cache: Optional[CacheService] = None,
) -> ServiceContainer:
    """Construct every service once from a single Settings object."""
    cache = cache or CacheService(settings)
    notifier = notifier or EmailNotifier(settings)
    token_service = TokenService(settings)
    role_resolver = RoleResolver(settings, cache)
    return ServiceContainer(
        settings=settings,
        cache=cache,
        notifier=notifier,
        token_service=token_service,
        role_resolver=role_resolver,
        auth_service=AuthService(settings, token_service, role_resolver, notifier),
        user_service=UserService(settings, token_service, role_resolver, notifier),
        role_service=RoleService(role_resolver),
        permission_service=PermissionService(role_resolver),
    )


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_settings(container: ServiceContainer = Depends(get_container)) -> Settings:
    return container.settings


def get_auth_service(container: ServiceContainer = Depends(get_container)) -> AuthService:
    return container.auth_service


def get_user_service(container: ServiceContainer = Depends(get_container)) -> UserService:
    return container.user_service


def get_role_service(container: ServiceContainer = Depends(get_container)) -> RoleService:
    return container.role_service


def get_permission_service(container: ServiceContainer = Depends(get_container)) -> PermissionService:
    return container.permission_service


def get_role_resolver(container: ServiceContainer = Depends(get_container)) -> RoleResolver:
    return container.role_resolver


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> User:
    """Resolve the bearer ACCESS token to its user."""
    token = extract_bearer(credentials)
    record = container.token_service.verify(db, token, TokenType.ACCESS)
    user = user_repository.get_by_id(db, record.user_id)
    if not user:
        raise UnauthorizedError("Please authenticate.")
    return user


class RequirePermissions:
    """Dependency that enforces required rights on a route.

    Any one of the listed rights grants access. With ``allow_self`` a user
    may also act on their own record, identified by the ``user_id`` path
    parameter.

    Usage:
        @router.get("/users", dependencies=[Depends(RequirePermissions("user-get"))])
    """

    def __init__(self, *required_rights: str, allow_self: bool = True):
        self.required_rights = required_rights
        self.allow_self = allow_self

    def __call__(
        self,
        request: Request,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
        resolver: RoleResolver = Depends(get_role_resolver),
    ) -> User:
        target_user_id = None
        if self.allow_self:
            raw = request.path_params.get("user_id")
            if raw is not None and str(raw).isdigit():
                target_user_id = int(raw)

        if not resolver.is_authorized(db, user, self.required_rights, target_user_id):
            raise ForbiddenError("Forbidden. You do not have the required rights to access this resource.")
        return user

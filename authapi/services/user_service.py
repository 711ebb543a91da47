"""User service: registration and user administration."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from authapi.core.config import Settings
from authapi.core.exceptions import (
    EmailAlreadyTakenError,
    ForbiddenError,
    ResourceNotFoundError,
    UserNotFoundError,
)
from authapi.core.security import hash_password
from authapi.models.role import Role
from authapi.models.user import User
from authapi.repositories.role_repository import role_repository
from authapi.repositories.token_repository import token_repository
from authapi.repositories.user_repository import user_repository
from authapi.services.auth_service import LoginResult
from authapi.services.interfaces import Notifier, TokenIssuer
from authapi.services.role_service import RoleResolver

logger = logging.getLogger(__name__)

ROLE_CHANGE_RIGHT = "user-modify"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Creates accounts and applies administrative changes to them."""

    def __init__(self, settings: Settings, tokens: TokenIssuer, roles: RoleResolver, notifier: Notifier):
        self._settings = settings
        self._tokens = tokens
        self._roles = roles
        self._notifier = notifier

    def _default_role(self, db: Session) -> Role:
        role = role_repository.get_role_by_name(db, self._settings.DEFAULT_ROLE_NAME)
        if role is None:
            logger.info(f"Creating missing default role '{self._settings.DEFAULT_ROLE_NAME}'")
            role = role_repository.create_role(db, name=self._settings.DEFAULT_ROLE_NAME)
        return role

    def register(self, db: Session, name: str, email: str, password: str) -> LoginResult:
        """Create an account with the default role and sign it in.

        A verify-email token is issued alongside the session tokens and sent
        in the welcome email.
        """
        email = normalize_email(email)
        if user_repository.email_taken(db, email):
            raise EmailAlreadyTakenError("Email already taken.")

        role = self._default_role(db)
        user = user_repository.create(
            db,
            name=name.strip(),
            email=email,
            hashed_password=hash_password(password),
            role_id=role.id,
            maximum_login_attempts=self._settings.MAX_LOGIN_ATTEMPTS,
        )
        tokens = self._tokens.issue_pair(db, user)
        verify_token = self._tokens.issue_verify_email_token(db, user.id)
        self._notifier.notify_registration(user, verify_token)
        logger.info(f"Registered user {user.id}")
        return LoginResult(user=user, role=self._roles.resolve(db, user.role_id), tokens=tokens)

    def get(self, db: Session, user_id: int) -> User:
        user = user_repository.get_by_id(db, user_id)
        if not user:
            raise UserNotFoundError("User not found.")
        return user

    def list_users(self, db: Session, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        return user_repository.list_users(db, page, page_size)

    def update(
        self,
        db: Session,
        actor: User,
        user_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        role_id: Optional[int] = None,
    ) -> User:
        user = self.get(db, user_id)
        fields: Dict[str, Any] = {}

        if name is not None:
            fields["name"] = name.strip()
        if email is not None:
            email = normalize_email(email)
            if user_repository.email_taken(db, email, exclude_user_id=user.id):
                raise EmailAlreadyTakenError("Email already taken.")
            fields["email"] = email
        if password is not None:
            fields["hashed_password"] = hash_password(password)
        if role_id is not None and role_id != user.role_id:
            # Owners may edit their profile but never their own role
            actor_role = self._roles.resolve(db, actor.role_id)
            if not self._roles.has_required_right(actor_role, [ROLE_CHANGE_RIGHT]):
                raise ForbiddenError("Forbidden. You do not have the required rights to change roles.")
            if role_repository.get_role(db, role_id) is None:
                raise ResourceNotFoundError("Role not found.")
            fields["role_id"] = role_id

        return user_repository.update_fields(db, user, actor.id, **fields)

    def delete(self, db: Session, user_id: int) -> None:
        user = self.get(db, user_id)
        token_repository.delete_for_user(db, user.id)
        user_repository.delete(db, user)
        logger.info(f"Deleted user {user_id}")

"""Component interfaces so implementations can be swapped or faked in tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional, Protocol

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from datetime import datetime

    from authapi.models.token import Token, TokenType
    from authapi.models.user import User
    from authapi.services.auth_service import LoginResult
    from authapi.services.role_service import ResolvedRole
    from authapi.services.token_service import AuthTokens, SessionSweep


class TokenIssuer(Protocol):
    """Creates, persists and verifies signed tokens."""

    def generate_token(self, user_id: int, token_type: TokenType, expires: datetime) -> str:
        ...

    def persist(self, db: Session, token: str, user_id: int, token_type: TokenType, expires: datetime) -> Token:
        ...

    def verify(self, db: Session, token: str, expected_type: TokenType) -> Token:
        ...

    def issue_pair(self, db: Session, user: User) -> AuthTokens:
        ...

    def purge_expired(self, db: Session, user_id: int) -> SessionSweep:
        ...

    def issue_reset_password_token(self, db: Session, user: User) -> str:
        ...

    def issue_verify_email_token(self, db: Session, user_id: int) -> str:
        ...


class LoginService(Protocol):
    """Login state machine and the token-backed account flows."""

    def login(self, db: Session, email: str, password: str) -> LoginResult:
        ...

    def logout(self, db: Session, refresh_token: str) -> int:
        ...

    def refresh(self, db: Session, refresh_token: str) -> AuthTokens:
        ...

    def request_password_reset(self, db: Session, email: str) -> str:
        ...

    def reset_password(self, db: Session, token: str, new_password: str) -> User:
        ...

    def request_email_verification(self, db: Session, user: User) -> str:
        ...

    def verify_email(self, db: Session, token: str) -> User:
        ...


class RoleResolverPort(Protocol):
    """Expands a role reference into its permission objects."""

    def resolve(self, db: Session, role_id: Optional[int]) -> Optional[ResolvedRole]:
        ...

    def has_required_right(self, role: Optional[ResolvedRole], required_rights: Iterable[str]) -> bool:
        ...


class Notifier(Protocol):
    """Outbound account notifications. Implementations must never raise."""

    def notify_registration(self, user: User, verify_email_token: str) -> None:
        ...

    def notify_login(self, user: User) -> None:
        ...

    def notify_account_locked(self, user: User) -> None:
        ...

    def notify_max_sessions(self, user: User) -> None:
        ...

    def send_password_reset(self, user: User, token: str) -> None:
        ...

    def notify_password_reset_success(self, user: User) -> None:
        ...

    def send_verification_email(self, user: User, token: str) -> None:
        ...

    def notify_email_verified(self, user: User) -> None:
        ...

"""Auth service: login state machine, logout, refresh, password reset and email verification."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from authapi.core.config import Settings
from authapi.core.exceptions import (
    AccountLockedError,
    InvalidCredentialsError,
    TokenNotFoundError,
    TooManySessionsError,
    UserNotFoundError,
)
from authapi.core.security import hash_password, verify_password
from authapi.core.timeutils import as_utc, humanize_remaining, utcnow
from authapi.models.token import TokenType
from authapi.models.user import User
from authapi.repositories.token_repository import token_repository
from authapi.repositories.user_repository import user_repository
from authapi.services.audit_service import audit_service
from authapi.services.interfaces import Notifier, RoleResolverPort, TokenIssuer
from authapi.services.role_service import ResolvedRole
from authapi.services.token_service import AuthTokens

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Incorrect email or password."


@dataclass
class LoginResult:
    user: User
    role: Optional[ResolvedRole]
    tokens: AuthTokens


class AuthService:
    """Handles authentication and the token-backed account flows.

    Login moves through Checking -> {Locked, AttemptRecorded, Authenticated}.
    Lock expiry is lazy: an expired lock is ignored here and only cleared by
    the next successful login.
    """

    def __init__(
        self,
        settings: Settings,
        tokens: TokenIssuer,
        roles: RoleResolverPort,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._settings = settings
        self._tokens = tokens
        self._roles = roles
        self._notifier = notifier
        self._clock = clock

    # ---- Lock handling ----
    def check_account_lock(self, user: User) -> None:
        """Raise AccountLockedError while the user's lock is still in force."""
        if not user.is_locked or user.lock_duration is None:
            return
        now = self._clock()
        lock_until = as_utc(user.lock_duration)
        if lock_until > now:
            raise AccountLockedError(
                f"Account is locked. Please try again {humanize_remaining(lock_until, now)}."
            )

    def _record_failed_attempt(self, db: Session, user: User) -> None:
        lock_hours = self._settings.LOCK_DURATION_HOURS
        lock_until = self._clock() + timedelta(hours=lock_hours)
        attempts_left = user_repository.record_failed_login(db, user, lock_until)

        if attempts_left > 0:
            audit_service.failed_login(db, user, attempts_left)
            noun = "attempt" if attempts_left == 1 else "attempts"
            raise InvalidCredentialsError(f"{INVALID_CREDENTIALS} {attempts_left} {noun} left.")

        logger.warning(f"Account {user.id} locked after repeated failed logins")
        audit_service.account_locked(db, user, lock_until)
        self._notifier.notify_account_locked(user)
        raise InvalidCredentialsError(
            "Account locked due to too many failed login attempts. "
            f"Please try again in {lock_hours} hour{'s' if lock_hours != 1 else ''}."
        )

    # ---- Login / logout / refresh ----
    def login(self, db: Session, email: str, password: str) -> LoginResult:
        user = user_repository.get_by_email(db, email)
        if not user:
            raise InvalidCredentialsError(INVALID_CREDENTIALS)

        self.check_account_lock(user)

        if not verify_password(password, user.hashed_password):
            self._record_failed_attempt(db, user)

        user_repository.reset_login_attempts(db, user, self._settings.MAX_LOGIN_ATTEMPTS)

        sweep = self._tokens.purge_expired(db, user.id)
        max_sessions = self._settings.MAX_ACTIVE_SESSIONS
        if len(sweep.active_tokens) >= max_sessions:
            logger.info(f"Login for user {user.id} rejected: {max_sessions} active sessions")
            self._notifier.notify_max_sessions(user)
            raise TooManySessionsError(
                f"Too many active sessions. Maximum {max_sessions} "
                f"session{'s' if max_sessions != 1 else ''} allowed at a time. "
                "Please logout from one of the active sessions."
            )

        tokens = self._tokens.issue_pair(db, user)
        self._notifier.notify_login(user)
        return LoginResult(user=user, role=self._roles.resolve(db, user.role_id), tokens=tokens)

    def logout(self, db: Session, refresh_token: str) -> int:
        """Delete the matching refresh token and return its owner id."""
        record = token_repository.find_active(db, refresh_token, TokenType.REFRESH)
        if not record:
            raise TokenNotFoundError("Token not found.")
        user_id = record.user_id
        if not token_repository.consume(db, record):
            raise TokenNotFoundError("Token not found.")
        return user_id

    def _token_owner(self, db: Session, user_id: int) -> User:
        user = user_repository.get_by_id(db, user_id)
        if not user:
            raise UserNotFoundError("User not found.")
        return user

    def refresh(self, db: Session, refresh_token: str) -> AuthTokens:
        """Rotate a refresh token; the consumed one is deleted before the new pair is issued."""
        record = self._tokens.verify(db, refresh_token, TokenType.REFRESH)
        user = self._token_owner(db, record.user_id)
        self.check_account_lock(user)
        if not token_repository.consume(db, record):
            raise TokenNotFoundError("Token not found.")
        return self._tokens.issue_pair(db, user)

    # ---- Password reset ----
    def request_password_reset(self, db: Session, email: str) -> str:
        user = user_repository.get_by_email(db, email)
        if not user:
            raise UserNotFoundError("No users found with this email.")
        token = self._tokens.issue_reset_password_token(db, user)
        self._notifier.send_password_reset(user, token)
        return token

    def reset_password(self, db: Session, token: str, new_password: str) -> User:
        record = self._tokens.verify(db, token, TokenType.RESET_PASSWORD)
        user = self._token_owner(db, record.user_id)
        self.check_account_lock(user)
        if not token_repository.consume(db, record):
            raise TokenNotFoundError("Token not found.")
        user_repository.set_password(db, user, hash_password(new_password))
        token_repository.delete_for_user(db, user.id, TokenType.RESET_PASSWORD)
        self._notifier.notify_password_reset_success(user)
        return user

    # ---- Email verification ----
    def request_email_verification(self, db: Session, user: User) -> str:
        token = self._tokens.issue_verify_email_token(db, user.id)
        self._notifier.send_verification_email(user, token)
        return token

    def verify_email(self, db: Session, token: str) -> User:
        record = self._tokens.verify(db, token, TokenType.VERIFY_EMAIL)
        user = self._token_owner(db, record.user_id)
        token_repository.delete_for_user(db, user.id, TokenType.VERIFY_EMAIL)
        user_repository.mark_email_verified(db, user)
        self._notifier.notify_email_verified(user)
        return user

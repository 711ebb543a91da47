"""Token service: signed JWT issuance, verification and session sweeps."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from authapi.core.config import Settings
from authapi.core.exceptions import TokenExpiredOrInvalidError, TokenNotFoundError
from authapi.core.timeutils import as_utc, utcnow
from authapi.models.token import Token, TokenType
from authapi.models.user import User
from authapi.repositories.token_repository import token_repository

logger = logging.getLogger(__name__)

# {"access": {"token": str, "expires": datetime}, "refresh": {...}}
AuthTokens = Dict[str, Dict[str, Any]]


@dataclass
class SessionSweep:
    """Result of purging a user's expired refresh tokens."""
    all_tokens: List[Token] = field(default_factory=list)
    expired_tokens: List[Token] = field(default_factory=list)

    @property
    def active_tokens(self) -> List[Token]:
        # Identity check: expired rows are gone and their attributes can no longer load
        expired = {id(t) for t in self.expired_tokens}
        return [t for t in self.all_tokens if id(t) not in expired and not t.blacklisted]


class TokenService:
    """Creates, persists and verifies the four token kinds.

    ACCESS tokens are self-contained and never stored. REFRESH, RESET_PASSWORD
    and VERIFY_EMAIL tokens must also exist in the tokens table to verify.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow):
        self._settings = settings
        self._clock = clock

    def generate_token(self, user_id: int, token_type: TokenType, expires: datetime) -> str:
        payload = {
            "sub": str(user_id),
            "iat": self._clock(),
            "exp": expires,
            "type": token_type.value,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._settings.JWT_SECRET, algorithm=self._settings.JWT_ALGORITHM)

    def persist(
        self,
        db: Session,
        token: str,
        user_id: int,
        token_type: TokenType,
        expires: datetime,
        blacklisted: bool = False,
    ) -> Token:
        if token_type == TokenType.ACCESS:
            raise ValueError("Access tokens are not persisted")
        return token_repository.create(db, token, user_id, token_type, expires, blacklisted)

    def decode(self, token: str, expected_type: TokenType) -> Dict[str, Any]:
        """Check signature, expiry and the ``type`` claim; return the payload."""
        try:
            payload = jwt.decode(
                token, self._settings.JWT_SECRET, algorithms=[self._settings.JWT_ALGORITHM]
            )
        except JWTError:
            raise TokenExpiredOrInvalidError("Token is expired or invalid.")

        if payload.get("type") != expected_type.value:
            raise TokenExpiredOrInvalidError("Token is expired or invalid.")
        try:
            payload["sub"] = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise TokenExpiredOrInvalidError("Token is expired or invalid.")
        return payload

    def verify(self, db: Session, token: str, expected_type: TokenType) -> Token:
        payload = self.decode(token, expected_type)

        if expected_type == TokenType.ACCESS:
            # Transient record, never added to the session
            return Token(
                user_id=payload["sub"],
                type=TokenType.ACCESS,
                expires=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                blacklisted=False,
            )

        record = token_repository.find_active(db, token, expected_type, user_id=payload["sub"])
        if record is None:
            raise TokenNotFoundError("Token not found.")
        return record

    def issue_pair(self, db: Session, user: User) -> AuthTokens:
        now = self._clock()
        access_expires = now + timedelta(minutes=self._settings.JWT_ACCESS_EXPIRATION_MINUTES)
        access_token = self.generate_token(user.id, TokenType.ACCESS, access_expires)

        refresh_expires = now + timedelta(days=self._settings.JWT_REFRESH_EXPIRATION_DAYS)
        refresh_token = self.generate_token(user.id, TokenType.REFRESH, refresh_expires)
        self.persist(db, refresh_token, user.id, TokenType.REFRESH, refresh_expires)

        return {
            "access": {"token": access_token, "expires": access_expires},
            "refresh": {"token": refresh_token, "expires": refresh_expires},
        }

    def issue_reset_password_token(self, db: Session, user: User) -> str:
        expires = self._clock() + timedelta(minutes=self._settings.JWT_RESET_PASSWORD_EXPIRATION_MINUTES)
        token = self.generate_token(user.id, TokenType.RESET_PASSWORD, expires)
        self.persist(db, token, user.id, TokenType.RESET_PASSWORD, expires)
        return token

    def issue_verify_email_token(self, db: Session, user_id: int) -> str:
        expires = self._clock() + timedelta(minutes=self._settings.JWT_VERIFY_EMAIL_EXPIRATION_MINUTES)
        token = self.generate_token(user_id, TokenType.VERIFY_EMAIL, expires)
        self.persist(db, token, user_id, TokenType.VERIFY_EMAIL, expires)
        return token

    def purge_expired(self, db: Session, user_id: int) -> SessionSweep:
        """Delete the user's expired refresh tokens and report what is left."""
        now = self._clock()
        all_tokens = token_repository.list_for_user(db, user_id, TokenType.REFRESH)
        expired = [t for t in all_tokens if as_utc(t.expires) < now]
        token_repository.delete_ids(db, [t.id for t in expired])
        if expired:
            logger.debug(f"Purged {len(expired)} expired refresh tokens for user {user_id}")
        return SessionSweep(all_tokens=all_tokens, expired_tokens=expired)

    def purge_all_expired(self, db: Session) -> int:
        deleted = token_repository.delete_expired(db, self._clock())
        logger.info(f"Expired token sweep removed {deleted} tokens")
        return deleted

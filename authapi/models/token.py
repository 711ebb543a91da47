"""Persisted token model (refresh, reset-password, verify-email)."""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, func
from authapi.db.base import Base


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    RESET_PASSWORD = "resetPassword"
    VERIFY_EMAIL = "verifyEmail"


class Token(Base):
    """Stored token record. ACCESS tokens are never written here."""
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(TokenType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    expires = Column(DateTime(timezone=True), nullable=False)
    blacklisted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

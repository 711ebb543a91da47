"""Repository for persisted tokens."""

import hashlib
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from authapi.models.token import Token, TokenType


def hash_token(token: str) -> str:
    """Tokens are stored by sha256 digest, never in clear."""
    return hashlib.sha256(token.encode()).hexdigest()


class TokenRepository:
    """Lookup and cleanup of stored REFRESH / RESET_PASSWORD / VERIFY_EMAIL tokens."""

    @staticmethod
    def create(
        db: Session,
        token: str,
        user_id: int,
        token_type: TokenType,
        expires: datetime,
        blacklisted: bool = False,
    ) -> Token:
        record = Token(
            token_hash=hash_token(token),
            user_id=user_id,
            type=token_type,
            expires=expires,
            blacklisted=blacklisted,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    @staticmethod
    def find_active(
        db: Session,
        token: str,
        token_type: TokenType,
        user_id: Optional[int] = None,
    ) -> Optional[Token]:
        """Non-blacklisted record matching the token string and type."""
        query = select(Token).where(
            Token.token_hash == hash_token(token),
            Token.type == token_type,
            Token.blacklisted.is_(False),
        )
        if user_id is not None:
            query = query.where(Token.user_id == user_id)
        return db.execute(query).scalar_one_or_none()

    @staticmethod
    def list_for_user(db: Session, user_id: int, token_type: TokenType) -> List[Token]:
        return list(
            db.execute(
                select(Token)
                .where(Token.user_id == user_id, Token.type == token_type)
                .order_by(Token.expires)
            ).scalars()
        )

    @staticmethod
    def consume(db: Session, record: Token) -> bool:
        """Delete a token row that is still live; False when another request already spent it.

        The delete matches on id, hash and the blacklist flag together, so a row
        whose id was reused for a newer token is never touched.
        """
        result = db.execute(
            delete(Token)
            .where(
                Token.id == record.id,
                Token.token_hash == record.token_hash,
                Token.blacklisted.is_(False),
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1

    @staticmethod
    def delete_ids(db: Session, token_ids: List[int]) -> int:
        if not token_ids:
            return 0
        result = db.execute(delete(Token).where(Token.id.in_(token_ids)))
        db.commit()
        return result.rowcount

    @staticmethod
    def delete_for_user(db: Session, user_id: int, token_type: Optional[TokenType] = None) -> int:
        query = delete(Token).where(Token.user_id == user_id)
        if token_type is not None:
            query = query.where(Token.type == token_type)
        result = db.execute(query)
        db.commit()
        return result.rowcount

    @staticmethod
    def delete_expired(db: Session, now: datetime) -> int:
        result = db.execute(delete(Token).where(Token.expires < now))
        db.commit()
        return result.rowcount


token_repository = TokenRepository()

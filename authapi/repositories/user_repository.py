"""Repository for User persistence, including the lockout counters."""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from authapi.models.user import User


class UserRepository:
    """Query and mutate users through explicit, single-purpose methods."""

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.get(User, user_id)

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        """Exact match on the stored value."""
        return db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    @staticmethod
    def email_taken(db: Session, email: str, exclude_user_id: Optional[int] = None) -> bool:
        query = select(User.id).where(User.email == email)
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        return db.execute(query).first() is not None

    @staticmethod
    def role_in_use(db: Session, role_id: int) -> bool:
        return db.execute(select(User.id).where(User.role_id == role_id)).first() is not None

    @staticmethod
    def create(
        db: Session,
        name: str,
        email: str,
        hashed_password: str,
        role_id: Optional[int],
        maximum_login_attempts: int,
        created_by: Optional[int] = None,
        is_email_verified: bool = False,
    ) -> User:
        user = User(
            name=name,
            email=email,
            hashed_password=hashed_password,
            role_id=role_id,
            maximum_login_attempts=maximum_login_attempts,
            created_by=created_by,
            is_email_verified=is_email_verified,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def list_users(db: Session, page: int = 1, page_size: int = 20):
        total = db.query(User).count()
        users = (
            db.query(User)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def record_failed_login(db: Session, user: User, lock_until: datetime) -> int:
        """Decrement the attempt counter and lock the account when it hits zero.

        Both steps are conditional UPDATEs evaluated by the database, so two
        concurrent failures cannot both read the same counter value. Returns the
        number of attempts left after this failure.
        """
        db.execute(
            update(User)
            .where(User.id == user.id, User.maximum_login_attempts > 0)
            .values(maximum_login_attempts=User.maximum_login_attempts - 1)
            .execution_options(synchronize_session=False)
        )
        db.execute(
            update(User)
            .where(User.id == user.id, User.maximum_login_attempts <= 0)
            .values(is_locked=True, lock_duration=lock_until)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        db.refresh(user)
        return user.maximum_login_attempts

    @staticmethod
    def reset_login_attempts(db: Session, user: User, maximum_login_attempts: int) -> User:
        """Restore the counter and clear any (possibly expired) lock."""
        user.maximum_login_attempts = maximum_login_attempts
        user.is_locked = False
        user.lock_duration = None
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def set_password(db: Session, user: User, hashed_password: str, updated_by: Optional[int] = None) -> User:
        user.hashed_password = hashed_password
        user.updated_by = updated_by if updated_by is not None else user.id
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def mark_email_verified(db: Session, user: User) -> User:
        user.is_email_verified = True
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_fields(db: Session, user: User, updated_by: Optional[int], **fields) -> User:
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_by = updated_by
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def delete(db: Session, user: User) -> None:
        db.delete(user)
        db.commit()


user_repository = UserRepository()

"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session

from authapi.core.config import settings
from authapi.core.security import hash_password
from authapi.repositories.role_repository import role_repository
from authapi.repositories.user_repository import user_repository


def seed_super_admin(db: Session) -> None:
    """Create the super-admin user with the admin role if not already present."""
    admin_role = role_repository.get_role_by_name(db, settings.ADMIN_ROLE_NAME)
    if not admin_role:
        print(f"⚠️  {settings.ADMIN_ROLE_NAME} role not found. Run seed_roles first.")
        return

    email = settings.SUPER_ADMIN_EMAIL.strip().lower()
    if user_repository.get_by_email(db, email):
        print(f"ℹ️  Super admin '{email}' already exists, skipping.")
        return

    user_repository.create(
        db,
        name="Super Admin",
        email=email,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        role_id=admin_role.id,
        maximum_login_attempts=settings.MAX_LOGIN_ATTEMPTS,
        is_email_verified=True,
    )
    print(f"✅ Created super admin: {email}")

import os

# Configure the environment before any authapi module builds its Settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("MAX_LOGIN_ATTEMPTS", "3")
os.environ.setdefault("MAX_ACTIVE_SESSIONS", "2")
os.environ.setdefault("LOCK_DURATION_HOURS", "1")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")

from typing import Any, Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import authapi.models  # noqa: E402,F401
from authapi.core.config import settings as app_settings  # noqa: E402
from authapi.core.security import hash_password  # noqa: E402
from authapi.db.base import Base  # noqa: E402
from authapi.db.session import SessionLocal, engine, get_db  # noqa: E402
from authapi.dependencies import build_container  # noqa: E402
from authapi.main import create_app  # noqa: E402
from authapi.repositories.role_repository import role_repository  # noqa: E402
from authapi.repositories.user_repository import user_repository  # noqa: E402
from authapi.services.cache_service import CacheService  # noqa: E402

PASSWORD = "Password123"


class RecordingNotifier:
    """Notifier that keeps every event in memory instead of queueing email."""

    def __init__(self):
        self.events: List[Tuple[str, str, Optional[str]]] = []

    def _record(self, kind: str, user, token: Optional[str] = None) -> None:
        self.events.append((kind, user.email, token))

    def kinds(self) -> List[str]:
        return [kind for kind, _, _ in self.events]

    def last_token(self, kind: str) -> Optional[str]:
        for event_kind, _, token in reversed(self.events):
            if event_kind == kind:
                return token
        return None

    def notify_registration(self, user, verify_email_token):
        self._record("registration", user, verify_email_token)

    def notify_login(self, user):
        self._record("login", user)

    def notify_account_locked(self, user):
        self._record("locked", user)

    def notify_max_sessions(self, user):
        self._record("max_sessions", user)

    def send_password_reset(self, user, token):
        self._record("reset_password", user, token)

    def notify_password_reset_success(self, user):
        self._record("reset_password_success", user)

    def send_verification_email(self, user, token):
        self._record("verify_email", user, token)

    def notify_email_verified(self, user):
        self._record("email_verified", user)


class MemoryCache(CacheService):
    """CacheService over a dict, for exercising cache hits and invalidation."""

    def __init__(self):
        super().__init__(app_settings)
        self.store: Dict[str, Any] = {}

    @property
    def enabled(self) -> bool:
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ttl_seconds=600):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)

    def invalidate_pattern(self, pattern):
        prefix = pattern.rstrip("*")
        for key in [k for k in self.store if k.startswith(prefix)]:
            del self.store[key]

    def health_check(self):
        return True


@pytest.fixture
def settings():
    return app_settings


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def container(settings, notifier):
    return build_container(settings, notifier=notifier)


@pytest.fixture
def client(db, container):
    app = create_app(container)
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db, settings):
    """Factory for users stored directly, without tokens or notifications."""

    def _make_user(
        email: str = "alice@example.com",
        password: str = PASSWORD,
        name: str = "Alice",
        role_id: Optional[int] = None,
    ):
        return user_repository.create(
            db,
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role_id=role_id,
            maximum_login_attempts=settings.MAX_LOGIN_ATTEMPTS,
        )

    return _make_user


@pytest.fixture
def make_role(db):
    """Factory for roles with permissions created by name."""

    def _make_role(name: str, permission_names: List[str], is_active: bool = True):
        ids = []
        for permission_name in permission_names:
            permission = role_repository.get_permission_by_name(db, permission_name)
            if permission is None:
                permission = role_repository.create_permission(db, name=permission_name)
            ids.append(permission.id)
        role = role_repository.create_role(db, name=name, is_active=is_active)
        role_repository.set_role_permissions(db, role.id, ids)
        return role

    return _make_role


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}

"""Refresh rotation, logout, password reset and email verification."""

from datetime import timedelta

import pytest

from authapi.core.exceptions import (
    AccountLockedError,
    TokenExpiredOrInvalidError,
    TokenNotFoundError,
    UserNotFoundError,
)
from authapi.core.security import verify_password
from authapi.core.timeutils import utcnow
from authapi.db.session import SessionLocal
from authapi.models.token import Token, TokenType
from authapi.repositories.token_repository import hash_token, token_repository
from conftest import PASSWORD


@pytest.fixture
def auth_service(container):
    return container.auth_service


@pytest.fixture
def user(make_user):
    return make_user("alice@example.com")


@pytest.fixture
def session(db, auth_service, user):
    return auth_service.login(db, "alice@example.com", PASSWORD)


def _interleave(monkeypatch, target, name, competing_request):
    """Run ``competing_request`` to completion in its own session the first time
    ``target.name`` is called, then let the original call carry on."""
    original = getattr(target, name)
    started, results = [], []

    def wrapper(*args, **kwargs):
        if not started:
            started.append(True)
            other_db = SessionLocal()
            try:
                results.append(competing_request(other_db))
            finally:
                other_db.close()
        return original(*args, **kwargs)

    monkeypatch.setattr(target, name, wrapper)
    return results


class TestRefresh:

    def test_rotates_refresh_token(self, db, auth_service, session):
        old_refresh = session.tokens["refresh"]["token"]

        tokens = auth_service.refresh(db, old_refresh)

        assert tokens["refresh"]["token"] != old_refresh
        assert db.query(Token).filter(Token.type == TokenType.REFRESH).count() == 1

    def test_refresh_token_is_single_use(self, db, auth_service, session):
        old_refresh = session.tokens["refresh"]["token"]
        auth_service.refresh(db, old_refresh)
        with pytest.raises(TokenNotFoundError):
            auth_service.refresh(db, old_refresh)

    def test_concurrent_refresh_rotates_once(self, db, auth_service, session, monkeypatch):
        old_refresh = session.tokens["refresh"]["token"]
        # A second request spends the same token between verification and deletion
        winners = _interleave(
            monkeypatch, auth_service, "check_account_lock",
            lambda other_db: auth_service.refresh(other_db, old_refresh),
        )

        with pytest.raises(TokenNotFoundError):
            auth_service.refresh(db, old_refresh)

        assert len(winners) == 1
        refresh_rows = db.query(Token).filter(Token.type == TokenType.REFRESH).all()
        assert len(refresh_rows) == 1
        assert refresh_rows[0].token_hash == hash_token(winners[0]["refresh"]["token"])

    def test_access_token_cannot_refresh(self, db, auth_service, session):
        with pytest.raises(TokenExpiredOrInvalidError):
            auth_service.refresh(db, session.tokens["access"]["token"])

    def test_locked_user_cannot_refresh(self, db, auth_service, session, user):
        user.is_locked = True
        user.lock_duration = utcnow() + timedelta(hours=1)
        db.commit()

        with pytest.raises(AccountLockedError):
            auth_service.refresh(db, session.tokens["refresh"]["token"])
        # The token survives the rejected rotation
        assert db.query(Token).filter(Token.type == TokenType.REFRESH).count() == 1


class TestLogout:

    def test_logout_deletes_the_session(self, db, auth_service, session, user):
        owner = auth_service.logout(db, session.tokens["refresh"]["token"])
        assert owner == user.id
        assert db.query(Token).count() == 0

    def test_logout_twice(self, db, auth_service, session):
        refresh = session.tokens["refresh"]["token"]
        auth_service.logout(db, refresh)
        with pytest.raises(TokenNotFoundError) as exc_info:
            auth_service.logout(db, refresh)
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Token not found."

    def test_concurrent_logout_succeeds_once(self, db, auth_service, session, user, monkeypatch):
        refresh = session.tokens["refresh"]["token"]
        winners = _interleave(
            monkeypatch, token_repository, "consume",
            lambda other_db: auth_service.logout(other_db, refresh),
        )

        with pytest.raises(TokenNotFoundError):
            auth_service.logout(db, refresh)

        assert winners == [user.id]
        assert db.query(Token).count() == 0

    def test_logout_frees_a_session_slot(self, db, auth_service, session):
        auth_service.login(db, "alice@example.com", PASSWORD)
        auth_service.logout(db, session.tokens["refresh"]["token"])
        auth_service.login(db, "alice@example.com", PASSWORD)


class TestPasswordReset:

    def test_unknown_email(self, db, auth_service):
        with pytest.raises(UserNotFoundError) as exc_info:
            auth_service.request_password_reset(db, "nobody@example.com")
        assert exc_info.value.message == "No users found with this email."

    def test_reset_changes_password(self, db, auth_service, user, notifier):
        token = auth_service.request_password_reset(db, "alice@example.com")
        assert notifier.last_token("reset_password") == token

        auth_service.reset_password(db, token, "NewPassword1")

        db.refresh(user)
        assert verify_password("NewPassword1", user.hashed_password)
        assert not verify_password(PASSWORD, user.hashed_password)
        assert notifier.kinds()[-1] == "reset_password_success"

    def test_reset_consumes_every_reset_token(self, db, auth_service, user):
        first = auth_service.request_password_reset(db, "alice@example.com")
        second = auth_service.request_password_reset(db, "alice@example.com")

        auth_service.reset_password(db, second, "NewPassword1")

        assert db.query(Token).filter(Token.type == TokenType.RESET_PASSWORD).count() == 0
        for used in (first, second):
            with pytest.raises(TokenNotFoundError):
                auth_service.reset_password(db, used, "OtherPassword2")

    def test_concurrent_reset_applies_once(self, db, auth_service, user, monkeypatch):
        token = auth_service.request_password_reset(db, "alice@example.com")
        winners = _interleave(
            monkeypatch, token_repository, "consume",
            lambda other_db: auth_service.reset_password(other_db, token, "FirstPassword1").id,
        )

        with pytest.raises(TokenNotFoundError):
            auth_service.reset_password(db, token, "SecondPassword2")

        assert winners == [user.id]
        db.refresh(user)
        assert verify_password("FirstPassword1", user.hashed_password)

    def test_reset_keeps_sessions(self, db, auth_service, session):
        token = auth_service.request_password_reset(db, "alice@example.com")
        auth_service.reset_password(db, token, "NewPassword1")
        assert db.query(Token).filter(Token.type == TokenType.REFRESH).count() == 1

    def test_locked_user_cannot_reset(self, db, auth_service, user):
        token = auth_service.request_password_reset(db, "alice@example.com")
        user.is_locked = True
        user.lock_duration = utcnow() + timedelta(hours=1)
        db.commit()
        with pytest.raises(AccountLockedError):
            auth_service.reset_password(db, token, "NewPassword1")

    def test_verify_email_token_cannot_reset(self, db, auth_service, user):
        token = auth_service.request_email_verification(db, user)
        with pytest.raises(TokenExpiredOrInvalidError):
            auth_service.reset_password(db, token, "NewPassword1")


class TestEmailVerification:

    def test_verify_marks_user(self, db, auth_service, user, notifier):
        token = auth_service.request_email_verification(db, user)
        assert notifier.last_token("verify_email") == token

        verified = auth_service.verify_email(db, token)

        assert verified.id == user.id
        db.refresh(user)
        assert user.is_email_verified is True
        assert db.query(Token).filter(Token.type == TokenType.VERIFY_EMAIL).count() == 0
        assert notifier.kinds()[-1] == "email_verified"

    def test_verification_token_is_single_use(self, db, auth_service, user):
        token = auth_service.request_email_verification(db, user)
        auth_service.verify_email(db, token)
        with pytest.raises(TokenNotFoundError):
            auth_service.verify_email(db, token)

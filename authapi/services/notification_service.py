"""Account notifications dispatched to the email task queue."""

import logging
from typing import Callable, Optional, Tuple

from authapi.core.config import Settings
from authapi.models.user import User
from authapi.services import email_templates

logger = logging.getLogger(__name__)

# (to_email, subject, html_body) -> None
Dispatch = Callable[[str, str, str], None]
# () -> (subject, html_body)
Render = Callable[[], Tuple[str, str]]


def _celery_dispatch(to_email: str, subject: str, html_body: str) -> None:
    from authapi.tasks.celery_app import send_email

    send_email.delay(to_email, subject, html_body)


class EmailNotifier:
    """Renders a template and hands it to the queue.

    Rendering and dispatch failures (bad template data, broker down) are
    logged and swallowed: a missed notification never fails the request
    that caused it.
    """

    def __init__(self, settings: Settings, dispatch: Optional[Dispatch] = None):
        self._settings = settings
        self._dispatch = dispatch or _celery_dispatch

    def _send(self, user: User, kind: str, render: Render) -> None:
        try:
            subject, html_body = render()
            self._dispatch(user.email, subject, html_body)
        except Exception as e:
            logger.warning(f"Failed to queue {kind} email to {user.email}: {e}")

    def _link(self, path: str, token: Optional[str] = None) -> str:
        base = self._settings.FRONTEND_URL.rstrip("/")
        return f"{base}/{path}?token={token}" if token else f"{base}/{path}"

    def notify_registration(self, user: User, verify_email_token: str) -> None:
        self._send(user, "registration", lambda: email_templates.registration(
            user.name, user.email, self._link("verify-email", verify_email_token)
        ))

    def notify_login(self, user: User) -> None:
        self._send(user, "login", lambda: email_templates.successful_login(user.name, user.email))

    def notify_account_locked(self, user: User) -> None:
        self._send(user, "account locked", lambda: email_templates.failed_login_attempts(
            user.name, user.email, self._settings.LOCK_DURATION_HOURS
        ))

    def notify_max_sessions(self, user: User) -> None:
        self._send(user, "max sessions", lambda: email_templates.max_active_sessions(
            user.name, user.email, self._settings.MAX_ACTIVE_SESSIONS
        ))

    def send_password_reset(self, user: User, token: str) -> None:
        self._send(user, "password reset", lambda: email_templates.reset_password(
            self._link("reset-password", token)
        ))

    def notify_password_reset_success(self, user: User) -> None:
        self._send(user, "password reset success", lambda: email_templates.reset_password_success(
            user.name, user.email
        ))

    def send_verification_email(self, user: User, token: str) -> None:
        self._send(user, "verification", lambda: email_templates.verify_email(
            self._link("verify-email", token)
        ))

    def notify_email_verified(self, user: User) -> None:
        self._send(user, "email verified", lambda: email_templates.verify_email_success(
            user.name, user.email, self._link("login")
        ))

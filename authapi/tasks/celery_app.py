"""Celery app and tasks for email delivery and the expired-token sweep."""

import logging
import smtplib

from celery import Celery

from authapi.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "authapi",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_soft_time_limit=60,
    task_time_limit=120,
    beat_schedule={
        "purge-expired-tokens": {
            "task": "purge_expired_tokens",
            "schedule": settings.TOKEN_PURGE_INTERVAL_MINUTES * 60.0,
        },
    },
)


@celery_app.task(
    bind=True,
    name="send_email",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    max_retries=settings.EMAIL_MAX_RETRIES,
)
def send_email(self, to_email: str, subject: str, html_body: str) -> bool:
    """Deliver one email; SMTP failures are retried with exponential backoff."""
    from authapi.services.email_service import EmailService

    if self.request.retries:
        logger.warning(f"Retrying email '{subject}' to {to_email} (attempt {self.request.retries + 1})")
    return EmailService(settings).send(to_email, subject, html_body)


@celery_app.task(name="purge_expired_tokens")
def purge_expired_tokens() -> int:
    """Delete every persisted token whose expiry has passed."""
    from authapi.db.session import SessionLocal
    from authapi.services.token_service import TokenService

    db = SessionLocal()
    try:
        return TokenService(settings).purge_all_expired(db)
    finally:
        db.close()

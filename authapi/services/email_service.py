"""SMTP delivery for outbound emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from authapi.core.config import Settings

logger = logging.getLogger(__name__)


class EmailService:
    """Sends HTML emails via SMTP.

    Transport errors propagate so the calling task can retry. When no SMTP
    host is configured the message is only logged.
    """

    def __init__(self, settings: Settings):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.enabled = bool(self.smtp_host)

    def build_message(self, to_email: str, subject: str, html_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def send(self, to_email: str, subject: str, html_body: str) -> bool:
        """Deliver one message. Returns False when SMTP is not configured."""
        if not self.enabled:
            logger.info(f"[EMAIL] SMTP not configured, skipping '{subject}' to {to_email}")
            return False

        msg = self.build_message(to_email, subject, html_body)
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
            if self.use_tls:
                server.starttls()
            if self.smtp_username:
                server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg)

        logger.info(f"[EMAIL] Sent '{subject}' to {to_email}")
        return True

"""HTML email templates for account notifications.

Each builder returns ``(subject, html_body)``. User-supplied values are escaped.
"""

from html import escape
from typing import Tuple

from authapi.core.config import settings

_STYLE = """
    body { font-family: Arial, sans-serif; background-color: #f4f4f4; color: #333; padding: 20px; }
    .container { background-color: #ffffff; padding: 20px; border-radius: 5px;
                 box-shadow: 0 2px 4px rgba(0, 0, 0, 0.1); max-width: 600px; margin: 40px auto; }
    .button { display: inline-block; padding: 10px 20px; background-color: #007BFF;
              color: #ffffff; text-decoration: none; border-radius: 5px; margin-top: 20px; }
    .footer { color: #94a3b8; font-size: 12px; margin-top: 30px; }
"""


def _layout(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="container">
        <h2>{title}</h2>
        {body}
        <p class="footer">{escape(settings.APP_NAME)}</p>
    </div>
</body>
</html>"""


def registration(name: str, email: str, verify_url: str) -> Tuple[str, str]:
    subject = "Welcome! Your account has been created"
    body = f"""
        <p>Dear {escape(name)},</p>
        <p>Your account with the email address <strong>{escape(email)}</strong> has been successfully created.</p>
        <p>Please confirm your email address to finish setting up your account:</p>
        <a href="{verify_url}" class="button">Verify Email</a>
        <p>If you did not create an account, you can ignore this email.</p>
    """
    return subject, _layout("Welcome aboard", body)


def successful_login(name: str, email: str) -> Tuple[str, str]:
    subject = "New login to your account"
    body = f"""
        <p>Dear {escape(name)},</p>
        <p>We noticed a new login to your account with the email address <strong>{escape(email)}</strong>
        and wanted to make sure it was you.</p>
        <p>If this was you, you can safely disregard this message. If you do not recognize this login,
        please change your password immediately.</p>
    """
    return subject, _layout("New login detected", body)


def failed_login_attempts(name: str, email: str, lock_hours: int) -> Tuple[str, str]:
    subject = "Your account has been locked"
    body = f"""
        <p>Dear {escape(name)},</p>
        <p>We have detected multiple failed login attempts to your account with the email address
        <strong>{escape(email)}</strong>. The account is locked for {lock_hours} hour{'s' if lock_hours != 1 else ''}.</p>
        <p>If you were not trying to log in, please reset your password once the lock expires.</p>
    """
    return subject, _layout("Failed login attempts", body)


def max_active_sessions(name: str, email: str, max_sessions: int) -> Tuple[str, str]:
    subject = "Maximum active sessions reached"
    body = f"""
        <p>Dear {escape(name)},</p>
        <p>Your account with the email address <strong>{escape(email)}</strong> has reached the maximum
        number of active sessions allowed ({max_sessions}).</p>
        <p>Log out from a device you no longer use, or wait for an older session to expire.
        If you did not initiate these sessions, change your password.</p>
    """
    return subject, _layout("Too many active sessions", body)


def reset_password(reset_url: str) -> Tuple[str, str]:
    subject = "Reset Your Password"
    body = f"""
        <p>Dear user,</p>
        <p>To reset your password, please click on the button below:</p>
        <a href="{reset_url}" class="button">Reset Password</a>
        <p>If you did not request a password reset, please ignore this email.</p>
    """
    return subject, _layout("Reset Your Password", body)


def reset_password_success(name: str, email: str) -> Tuple[str, str]:
    subject = "Your password has been changed"
    body = f"""
        <p>Dear {escape(name)},</p>
        <p>This is a confirmation that the password for your account with the email address
        <strong>{escape(email)}</strong> has been successfully changed.</p>
        <p>If you did not request this change, <strong>contact our support team immediately</strong>.</p>
    """
    return subject, _layout("Password changed", body)


def verify_email(verify_url: str) -> Tuple[str, str]:
    subject = "Email Verification"
    body = f"""
        <p>Dear user,</p>
        <p>To verify your email, click on the button below:</p>
        <a href="{verify_url}" class="button">Verify Email</a>
        <p>If you did not create an account, then ignore this email.</p>
    """
    return subject, _layout("Verify your email", body)


def verify_email_success(name: str, email: str, login_url: str) -> Tuple[str, str]:
    subject = "Email verified"
    body = f"""
        <p>Dear {escape(name)},</p>
        <p>The email address <strong>{escape(email)}</strong> has been successfully verified.
        Your account is now fully activated.</p>
        <a href="{login_url}" class="button">Log in</a>
    """
    return subject, _layout("Email verified", body)

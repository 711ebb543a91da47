"""Custom exception classes for the auth platform."""

from typing import Optional

from fastapi import status


class AuthPlatformError(Exception):
    """Base exception for the auth platform.

    Every subclass carries the HTTP status the API answers with, so services can
    raise domain errors without knowing about the transport.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred", status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class AuthenticationError(AuthPlatformError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(AuthPlatformError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(AuthPlatformError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(AuthPlatformError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT


class ValidationError(AuthPlatformError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


# ---- Auth domain errors ----
class InvalidCredentialsError(AuthenticationError):
    """Wrong email or password. Never says which one."""


class TokenExpiredOrInvalidError(AuthenticationError):
    """Signature, expiry, format or type check failed."""


class UnauthorizedError(AuthenticationError):
    """Missing or unusable bearer credentials."""


class AccountLockedError(AuthorizationError):
    """Account is locked and the lock has not expired yet."""


class TooManySessionsError(AuthorizationError):
    """The active session cap was reached before minting new tokens."""


class ForbiddenError(AuthorizationError):
    """Authenticated, but lacks the required permission and is not the owner."""


class TokenNotFoundError(ResourceNotFoundError):
    """No matching non-blacklisted stored token."""


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user lookup comes back empty."""


class EmailAlreadyTakenError(ResourceConflictError):
    """Raised on registration with an email that already exists."""

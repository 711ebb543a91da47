"""Password hashing and bearer-credential helpers."""

import bcrypt
from typing import Optional

from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from authapi.core.exceptions import UnauthorizedError

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def extract_bearer(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    """Return the raw token from an ``Authorization: Bearer`` header."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise UnauthorizedError("Please authenticate.")
    return credentials.credentials

"""Auth API router: register, login, logout, token refresh, password reset, email verification."""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from authapi.core.config import settings
from authapi.core.rate_limiter import limiter
from authapi.db.session import get_db
from authapi.dependencies import get_auth_service, get_current_user, get_role_resolver, get_user_service
from authapi.models.user import User
from authapi.schemas.schemas import (
    AuthResponse, AuthTokensOut, ForgotPasswordRequest, LoginRequest, MeResponse,
    MessageResponse, RefreshTokenRequest, RegisterRequest, ResetPasswordRequest,
    RoleOut, UserOut,
)
from authapi.services.audit_service import AuditAction, audit_service
from authapi.services.auth_service import LoginResult
from authapi.services.interfaces import LoginService, RoleResolverPort
from authapi.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(result: LoginResult) -> AuthResponse:
    return AuthResponse(
        user=UserOut.model_validate(result.user),
        role=RoleOut.model_validate(result.role) if result.role else None,
        token=AuthTokensOut(**result.tokens),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    """Register a new user with the default role and sign them in."""
    result = users.register(db, body.name, body.email, body.password)
    audit_service.user_event(db, AuditAction.REGISTERED, result.user.id, result.user.email, request=request)
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    auth: LoginService = Depends(get_auth_service),
):
    """Authenticate and return an access/refresh token pair."""
    result = auth.login(db, body.email, body.password)
    audit_service.user_event(db, AuditAction.LOGIN, result.user.id, result.user.email, request=request)
    return _auth_response(result)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
    auth: LoginService = Depends(get_auth_service),
):
    """Delete the session behind a refresh token."""
    user_id = auth.logout(db, body.refresh_token)
    audit_service.user_event(db, AuditAction.LOGOUT, user_id, request=request)
    return MessageResponse(message="Logged out successfully.")


@router.post("/refresh-tokens", response_model=AuthTokensOut)
def refresh_tokens(
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
    auth: LoginService = Depends(get_auth_service),
):
    """Exchange a refresh token for a new pair. Each refresh token works once."""
    return AuthTokensOut(**auth.refresh(db, body.refresh_token))


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auth: LoginService = Depends(get_auth_service),
):
    """Email a reset-password link."""
    auth.request_password_reset(db, body.email.lower())
    return MessageResponse(message="Password reset email sent.")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    auth: LoginService = Depends(get_auth_service),
):
    """Set a new password using a reset-password token."""
    user = auth.reset_password(db, token, body.password)
    audit_service.user_event(db, AuditAction.PASSWORD_RESET, user.id, user.email, request=request)
    return MessageResponse(message="Password has been reset successfully.")


@router.post("/send-verification-email", response_model=MessageResponse)
def send_verification_email(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    auth: LoginService = Depends(get_auth_service),
):
    """Email a verification link to the signed-in user."""
    auth.request_email_verification(db, user)
    return MessageResponse(message="Verification email sent.")


@router.get("/verify-email", response_model=MessageResponse)
def verify_email(
    request: Request,
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    auth: LoginService = Depends(get_auth_service),
):
    """Mark the token owner's email as verified."""
    user = auth.verify_email(db, token)
    audit_service.user_event(db, AuditAction.EMAIL_VERIFIED, user.id, user.email, request=request)
    return MessageResponse(message="Email verified successfully.")


@router.get("/me", response_model=MeResponse)
def get_me(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    resolver: RoleResolverPort = Depends(get_role_resolver),
):
    """Get the current user with their resolved role."""
    role = resolver.resolve(db, user.role_id)
    return MeResponse(
        user=UserOut.model_validate(user),
        role=RoleOut.model_validate(role) if role else None,
    )

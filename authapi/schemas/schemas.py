"""Pydantic schemas for API request/response serialization."""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime

from authapi.models.role import PERMISSION_NAME_PATTERN, ROLE_NAME_PATTERN

_PASSWORD_LETTER = re.compile(r"[a-zA-Z]")
_PASSWORD_DIGIT = re.compile(r"\d")


def check_password(value: str) -> str:
    """At least 8 characters with one letter and one number."""
    if len(value) < 8:
        raise ValueError("password must be at least 8 characters")
    if not _PASSWORD_LETTER.search(value) or not _PASSWORD_DIGIT.search(value):
        raise ValueError("password must contain at least 1 letter and 1 number")
    return value


# ---- Auth ----
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password(v)

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)

    class Config:
        populate_by_name = True

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

class ResetPasswordRequest(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password(v)

class TokenOut(BaseModel):
    token: str
    expires: datetime

class AuthTokensOut(BaseModel):
    access: TokenOut
    refresh: TokenOut

class MessageResponse(BaseModel):
    message: str


# ---- RBAC ----
class PermissionOut(BaseModel):
    id: int
    name: str
    is_active: bool

    class Config:
        from_attributes = True

class PermissionDetailOut(PermissionOut):
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PermissionCreate(BaseModel):
    name: str
    is_active: bool = Field(True, alias="isActive")

    class Config:
        populate_by_name = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not PERMISSION_NAME_PATTERN.match(v):
            raise ValueError("name must look like '<resource>-<create|modify|get|update|delete>'")
        return v

class PermissionUpdate(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")

    class Config:
        populate_by_name = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not PERMISSION_NAME_PATTERN.match(v):
            raise ValueError("name must look like '<resource>-<create|modify|get|update|delete>'")
        return v

class PermissionListResponse(BaseModel):
    permissions: List[PermissionDetailOut]
    total: int
    page: int
    page_size: int

class RoleOut(BaseModel):
    """Role with populated permission objects."""
    id: int
    name: str
    is_active: bool
    permissions: List[PermissionOut] = []

    class Config:
        from_attributes = True

class RoleCreate(BaseModel):
    name: str
    permission_ids: List[int] = Field(default_factory=list, alias="permissionIds")
    is_active: bool = Field(True, alias="isActive")

    class Config:
        populate_by_name = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not ROLE_NAME_PATTERN.match(v):
            raise ValueError("name must start with an uppercase letter and contain only letters and spaces")
        return v

class RoleUpdate(BaseModel):
    name: Optional[str] = None
    permission_ids: Optional[List[int]] = Field(None, alias="permissionIds")
    is_active: Optional[bool] = Field(None, alias="isActive")

    class Config:
        populate_by_name = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not ROLE_NAME_PATTERN.match(v):
            raise ValueError("name must start with an uppercase letter and contain only letters and spaces")
        return v

class RoleListResponse(BaseModel):
    roles: List[RoleOut]
    total: int
    page: int
    page_size: int


# ---- User ----
class UserOut(BaseModel):
    """Public view of a user; credentials and lockout counters are never exposed."""
    id: int
    name: str
    email: str
    role_id: Optional[int] = None
    is_email_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserAdminOut(UserOut):
    is_locked: bool = False
    lock_duration: Optional[datetime] = None

class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role_id: Optional[int] = Field(None, alias="roleId")

    class Config:
        populate_by_name = True

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return check_password(v) if v is not None else v

class UserListResponse(BaseModel):
    users: List[UserAdminOut]
    total: int
    page: int
    page_size: int

class AuthResponse(BaseModel):
    user: UserOut
    role: Optional[RoleOut] = None
    token: AuthTokensOut

class MeResponse(BaseModel):
    user: UserOut
    role: Optional[RoleOut] = None


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AuditLogListResponse(BaseModel):
    logs: List[AuditLogOut]
    total: int
    page: int
    page_size: int

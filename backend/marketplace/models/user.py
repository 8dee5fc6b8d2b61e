from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional

from marketplace.models.common import ApiModel, RequestModel
from marketplace.models_sqlalchemy.models import UserRole


class UserResponse(ApiModel):
    id: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    is_email_verified: bool
    is_deletable: bool
    is_active: bool
    created_by: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class CurrentUserResponse(UserResponse):
    is_impersonating: bool = False
    original_user: Optional[UserResponse] = None


class SendOtpRequest(RequestModel):
    email: EmailStr


class VerifyOtpRequest(RequestModel):
    email: EmailStr
    # Length and digits are checked in OtpService.verify_code.
    code: str


class RegisterRequest(RequestModel):
    email: EmailStr
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)


class AuthResponse(ApiModel):
    message: str
    user: Optional[UserResponse] = None
    requires_registration: bool = False
    email: Optional[str] = None
    # Same value as the session cookie, for clients that send a bearer header.
    token: Optional[str] = None


class OtpFailureResponse(ApiModel):
    message: str
    hint: Optional[str] = None


class RoleUpdateRequest(RequestModel):
    role: UserRole


class ImpersonationResponse(ApiModel):
    message: str
    target_user: Optional[UserResponse] = None
    token: Optional[str] = None

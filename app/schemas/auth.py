from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.user import Role


# Request schemas
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., max_length=128)
    role: Role = Role.USER


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., max_length=128)
    totp_code: Optional[str] = Field(default=None, alias="totpCode", max_length=10)

    model_config = {"populate_by_name": True}


class TwoFactorVerifyRequest(BaseModel):
    token: str = Field(..., max_length=10)  # code from the authenticator app
    secret: str = Field(..., min_length=16, max_length=64)


class TwoFactorLoginRequest(BaseModel):
    email: EmailStr
    token: str = Field(..., max_length=10)


# Response schemas
class UserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    role: Role

    model_config = {"from_attributes": True}


class UserDetailResponse(UserResponse):
    is_two_factor_enabled: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class RegisterResponse(BaseModel):
    message: str = "User registered successfully"
    user: UserResponse


class AuthCheckResponse(BaseModel):
    user: UserResponse


class TwoFactorSetupResponse(BaseModel):
    secret: str
    qrCode: str  # otpauth:// provisioning URI


class MessageResponse(BaseModel):
    message: str


class UserListResponse(BaseModel):
    users: list[UserDetailResponse]
    total: int

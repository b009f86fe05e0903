"""Admin request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from schemas.token import SessionInfo


class AdminGenerateOtpRequest(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1)
    university_name: str = Field(min_length=1)
    super_admin_code: Optional[str] = Field(
        default=None,
        description="Shared secret; required when the server enforces it.",
    )


class AdminVerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=1)
    password: str


class AdminLoginRequest(BaseModel):
    email: EmailStr
    password: str


class CheckEmailRequest(BaseModel):
    email: EmailStr


class CheckEmailResponse(BaseModel):
    success: bool = True
    exists: bool


class AdminInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    admin_id: str
    name: str
    email: str
    tenant_id: str
    status: str
    university_name: Optional[str] = None
    university_code: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class AdminAuthResponse(BaseModel):
    success: bool = True
    message: str
    session: SessionInfo
    admin: AdminInfo

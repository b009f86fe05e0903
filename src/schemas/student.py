"""Student request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from schemas.token import SessionInfo


class StudentRegistrationRequest(BaseModel):
    """Begin (or resume) a student registration."""

    name: str = Field(min_length=1)
    email: EmailStr
    university_code: str = Field(min_length=1)
    register_number: str = Field(min_length=1)
    division: Optional[str] = None
    class_year: Optional[int] = Field(default=None, ge=1, le=10)
    semester: Optional[int] = Field(default=None, ge=1, le=20)
    phone: Optional[str] = None


class StudentRegistrationResponse(BaseModel):
    success: bool = True
    message: str
    student_id: str
    resuming: bool = False


class StudentIdRequest(BaseModel):
    student_id: str


class StudentOtpRequest(BaseModel):
    student_id: str
    otp: str = Field(min_length=1)


class StudentPasswordRequest(BaseModel):
    student_id: str
    password: str


class StudentLoginRequest(BaseModel):
    email: EmailStr
    password: str
    university_code: str = Field(min_length=1)


class StudentLoginOtpRequest(BaseModel):
    register_number: str = Field(min_length=1)
    university_code: str = Field(min_length=1)


class StudentLoginWithOtpRequest(StudentLoginOtpRequest):
    otp: str = Field(min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr
    university_code: str = Field(min_length=1)


class StudentIdResponse(BaseModel):
    success: bool = True
    message: str
    student_id: str


class StudentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: str
    tenant_id: str
    name: str
    email: str
    register_number: Optional[str] = None
    division: Optional[str] = None
    class_year: Optional[int] = None
    semester: Optional[int] = None
    phone: Optional[str] = None
    status: str
    is_verified: bool
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class StudentAuthResponse(BaseModel):
    success: bool = True
    message: str
    session: SessionInfo
    student: StudentInfo

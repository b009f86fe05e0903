"""Faculty request/response schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from schemas.token import SessionInfo


class FacultySelfRegisterRequest(BaseModel):
    """Self-service registration gated by a faculty registration code."""

    registration_code: str = Field(min_length=1)
    university_code: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: EmailStr
    employee_id: str = Field(min_length=1)
    department: str = Field(min_length=1)
    password: str


class AdminCreateFacultyRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    employee_id: str = Field(min_length=1)
    department: str = Field(min_length=1)
    temporary_password: Optional[str] = Field(
        default=None,
        description="Generated when omitted.",
    )


class FacultyLoginRequest(BaseModel):
    email: EmailStr
    password: str
    university_code: str = Field(min_length=1)


class FacultyCompleteRegistrationRequest(BaseModel):
    name: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    qualification: Optional[str] = None
    specialization: Optional[str] = None
    experience: Optional[str] = None
    address: Optional[str] = None
    new_password: Optional[str] = Field(
        default=None,
        description="Replaces the temporary password when given.",
    )


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class FacultyInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    faculty_id: str
    tenant_id: str
    name: str
    email: str
    employee_id: str
    department: str
    state: str
    status: str
    is_verified: bool
    registration_completed: bool
    phone: Optional[str] = None
    qualification: Optional[str] = None
    specialization: Optional[str] = None
    experience: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class FacultyResponse(BaseModel):
    success: bool = True
    message: str
    faculty: FacultyInfo
    resuming: bool = False


class FacultyListResponse(BaseModel):
    success: bool = True
    faculty: List[FacultyInfo]


class FacultyAuthResponse(BaseModel):
    success: bool = True
    message: str
    session: SessionInfo
    faculty: FacultyInfo

"""Registration code and registration log schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerateRegistrationCodeRequest(BaseModel):
    code_type: Literal["faculty", "student"]
    expires_in_days: Optional[int] = Field(
        default=None,
        ge=1,
        le=365,
        description="Days until the code expires. Server default when omitted.",
    )


class RegistrationCodeIdRequest(BaseModel):
    code_id: str


class PrincipalSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class RegistrationCodeInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    code_type: str
    used: bool
    is_active: bool
    expires_at: datetime
    used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    expired: Optional[bool] = None
    used_by_principal: Optional[PrincipalSummary] = None


class RegistrationCodeResponse(BaseModel):
    success: bool = True
    message: str
    code: RegistrationCodeInfo


class RegistrationCodeListResponse(BaseModel):
    success: bool = True
    codes: List[RegistrationCodeInfo]


class VerifyRegistrationCodeResponse(BaseModel):
    success: bool = True
    valid: bool = True
    code_type: str
    university_name: str
    university_code: str
    expires_at: datetime


class RegistrationLogInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str
    principal_id: str
    name: str
    email: str
    employee_id: Optional[str] = None
    register_number: Optional[str] = None
    method: str
    created_at: Optional[datetime] = None


class RegistrationLogListResponse(BaseModel):
    success: bool = True
    logs: List[RegistrationLogInfo]

"""University (tenant) schemas."""

from pydantic import BaseModel


class UniversityInfo(BaseModel):
    """Public view of an active university."""

    name: str
    university_code: str


class UniversityInfoResponse(BaseModel):
    success: bool = True
    university: UniversityInfo

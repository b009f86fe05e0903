"""Public university lookup."""

from fastapi import APIRouter

from core.dependencies import TenantDirectoryDep
from schemas.tenant import UniversityInfo, UniversityInfoResponse

router = APIRouter(prefix="/university", tags=["University"])


@router.get("/info/{code}", response_model=UniversityInfoResponse, summary="University info")
def get_university_info(code: str, tenants: TenantDirectoryDep) -> UniversityInfoResponse:
    """Return name and code of an active university.

    Args:
        code: University code, any case.
        tenants: Injected TenantDirectory instance.

    Returns:
        Public university info.
    """
    return UniversityInfoResponse(university=UniversityInfo(**tenants.public_info(code)))

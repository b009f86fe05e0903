"""Admin management routes.

Faculty onboarding and approval plus the registration audit log, all scoped
to the calling admin's university.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.routes.auth import get_current_admin
from core.dependencies import FacultyManagerDep, RegistrationLogDep
from models.principal import AdminModel
from schemas.faculty import (
    AdminCreateFacultyRequest,
    FacultyInfo,
    FacultyListResponse,
    FacultyResponse,
)
from schemas.registration_code import RegistrationLogInfo, RegistrationLogListResponse

router = APIRouter(prefix="/admin", tags=["Admin"])


def _faculty_response(faculty, message: str, resuming: bool = False) -> FacultyResponse:
    return FacultyResponse(
        message=message,
        faculty=FacultyInfo.model_validate(faculty),
        resuming=resuming,
    )


@router.get("/faculty", response_model=FacultyListResponse, summary="List faculty")
def list_faculty(
    faculty_manager: FacultyManagerDep,
    state: Optional[str] = Query(default=None, description="Filter by lifecycle state."),
    admin: AdminModel = Depends(get_current_admin),
) -> FacultyListResponse:
    models = faculty_manager.list_faculty(admin.tenant_id, state)
    return FacultyListResponse(faculty=[FacultyInfo.model_validate(m) for m in models])


@router.post(
    "/faculty",
    response_model=FacultyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a faculty account",
)
def create_faculty(
    req: AdminCreateFacultyRequest,
    faculty_manager: FacultyManagerDep,
    admin: AdminModel = Depends(get_current_admin),
) -> FacultyResponse:
    """Create a faculty account in the admin's university.

    The faculty member is emailed a temporary password and a completion link.

    Args:
        req: Faculty profile and optional temporary password.
        faculty_manager: Injected FacultyManager instance.
        admin: Current authenticated admin.

    Returns:
        The faculty member, awaiting profile completion.
    """
    started = faculty_manager.create_by_admin(
        admin.tenant_id,
        name=req.name,
        email=req.email,
        employee_id=req.employee_id,
        department=req.department,
        temporary_password=req.temporary_password,
    )
    return _faculty_response(
        started.principal,
        "Faculty registered successfully. Credentials have been sent by email.",
        resuming=started.resuming,
    )


@router.post(
    "/faculty/{faculty_id}/approve",
    response_model=FacultyResponse,
    summary="Approve a self-registered faculty member",
)
def approve_faculty(
    faculty_id: str,
    faculty_manager: FacultyManagerDep,
    admin: AdminModel = Depends(get_current_admin),
) -> FacultyResponse:
    faculty = faculty_manager.approve(faculty_id, admin.tenant_id)
    return _faculty_response(faculty, "Faculty approved")


@router.post(
    "/faculty/{faculty_id}/deactivate",
    response_model=FacultyResponse,
    summary="Deactivate a faculty member",
)
def deactivate_faculty(
    faculty_id: str,
    faculty_manager: FacultyManagerDep,
    admin: AdminModel = Depends(get_current_admin),
) -> FacultyResponse:
    faculty = faculty_manager.deactivate(faculty_id, admin.tenant_id)
    return _faculty_response(faculty, "Faculty deactivated")


@router.post(
    "/faculty/{faculty_id}/resend-completion",
    response_model=FacultyResponse,
    summary="Resend the completion link",
)
def resend_completion(
    faculty_id: str,
    faculty_manager: FacultyManagerDep,
    admin: AdminModel = Depends(get_current_admin),
) -> FacultyResponse:
    """Email a fresh completion link. Earlier links stop working."""
    faculty = faculty_manager.resend_completion(faculty_id, admin.tenant_id)
    return _faculty_response(faculty, "Completion link sent")


@router.get(
    "/registration-logs",
    response_model=RegistrationLogListResponse,
    summary="List registrations",
)
def list_registration_logs(
    registration_log: RegistrationLogDep,
    role: Optional[str] = Query(default=None, pattern="^(faculty|student)$"),
    limit: int = Query(default=100, ge=1, le=500),
    admin: AdminModel = Depends(get_current_admin),
) -> RegistrationLogListResponse:
    logs = registration_log.list_logs(admin.tenant_id, role=role, limit=limit)
    return RegistrationLogListResponse(logs=[RegistrationLogInfo.model_validate(log) for log in logs])

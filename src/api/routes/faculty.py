"""Faculty routes.

Self-service registration, login, completing an admin-created account and
changing the password.
"""

from fastapi import APIRouter, Depends, status

from api.routes.auth import require_faculty
from core.dependencies import FacultyManagerDep
from schemas.faculty import (
    ChangePasswordRequest,
    FacultyAuthResponse,
    FacultyCompleteRegistrationRequest,
    FacultyInfo,
    FacultyLoginRequest,
    FacultyResponse,
    FacultySelfRegisterRequest,
)
from schemas.token import MessageResponse, SessionInfo
from utils.session_issuer import TokenClaims

router = APIRouter(prefix="/faculty", tags=["Faculty"])


@router.post(
    "/register",
    response_model=FacultyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Self-register with a registration code",
)
def register(
    req: FacultySelfRegisterRequest,
    faculty_manager: FacultyManagerDep,
) -> FacultyResponse:
    """Register a faculty member against a faculty registration code.

    The account waits for admin approval; the tenant admin is notified.

    Args:
        req: Registration code, university code, profile and password.
        faculty_manager: Injected FacultyManager instance.

    Returns:
        The pending faculty member.
    """
    started = faculty_manager.self_register(
        req.registration_code,
        req.university_code,
        name=req.name,
        email=req.email,
        employee_id=req.employee_id,
        department=req.department,
        password=req.password,
    )
    return FacultyResponse(
        message="Registration request submitted successfully. Please wait for admin approval.",
        faculty=FacultyInfo.model_validate(started.principal),
        resuming=started.resuming,
    )


@router.post("/login", response_model=FacultyAuthResponse, summary="Faculty login")
def login(
    req: FacultyLoginRequest,
    faculty_manager: FacultyManagerDep,
) -> FacultyAuthResponse:
    """Log a faculty member in.

    Accounts that still need approval or profile completion get a session
    flagged ``requires_registration``.
    """
    result = faculty_manager.login(req.email, req.password, req.university_code)
    if result.session.requires_registration:
        message = "Please complete your registration"
    else:
        message = "Login successful"
    return FacultyAuthResponse(
        message=message,
        session=SessionInfo.from_issued(result.session),
        faculty=FacultyInfo.model_validate(result.principal),
    )


@router.post(
    "/complete-registration/{token}",
    response_model=FacultyResponse,
    summary="Complete an admin-created account",
)
def complete_registration(
    token: str,
    req: FacultyCompleteRegistrationRequest,
    faculty_manager: FacultyManagerDep,
) -> FacultyResponse:
    profile = req.model_dump(exclude={"new_password"}, exclude_none=True)
    faculty = faculty_manager.complete_registration(token, profile, req.new_password)
    return FacultyResponse(
        message="Registration completed successfully",
        faculty=FacultyInfo.model_validate(faculty),
    )


@router.post("/change-password", response_model=MessageResponse, summary="Change password")
def change_password(
    req: ChangePasswordRequest,
    faculty_manager: FacultyManagerDep,
    claims: TokenClaims = Depends(require_faculty),
) -> MessageResponse:
    faculty_manager.change_password(claims.principal_id, req.current_password, req.new_password)
    return MessageResponse(message="Password changed successfully")

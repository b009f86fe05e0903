"""Student routes.

Registration (verify university code -> verify OTP -> set password), password
and OTP login, and password reset.
"""

from fastapi import APIRouter

from core.dependencies import StudentManagerDep
from models.principal import StudentModel
from schemas.student import (
    PasswordResetRequest,
    StudentAuthResponse,
    StudentIdRequest,
    StudentIdResponse,
    StudentInfo,
    StudentLoginOtpRequest,
    StudentLoginRequest,
    StudentLoginWithOtpRequest,
    StudentOtpRequest,
    StudentPasswordRequest,
    StudentRegistrationRequest,
    StudentRegistrationResponse,
)
from schemas.token import MessageResponse, SessionInfo
from utils.lifecycle import AuthResult

router = APIRouter(prefix="/student", tags=["Student"])


def _auth_response(result: AuthResult, message: str) -> StudentAuthResponse:
    return StudentAuthResponse(
        message=message,
        session=SessionInfo.from_issued(result.session),
        student=StudentInfo.model_validate(result.principal),
    )


def _id_response(student: StudentModel, message: str) -> StudentIdResponse:
    return StudentIdResponse(message=message, student_id=student.student_id)


@router.post(
    "/verify-university-code",
    response_model=StudentRegistrationResponse,
    summary="Begin student registration",
)
def verify_university_code(
    req: StudentRegistrationRequest,
    student_manager: StudentManagerDep,
) -> StudentRegistrationResponse:
    """Resolve the university and start (or resume) a registration.

    A verification OTP is emailed to the student.

    Args:
        req: Profile fields and university code.
        student_manager: Injected StudentManager instance.

    Returns:
        The pending student's id and whether an earlier attempt was resumed.
    """
    started = student_manager.begin_registration(
        req.university_code,
        name=req.name,
        email=req.email,
        register_number=req.register_number,
        division=req.division,
        class_year=req.class_year,
        semester=req.semester,
        phone=req.phone,
    )
    message = (
        "OTP sent successfully. Please complete your registration."
        if started.resuming
        else "Verification code sent to your email"
    )
    return StudentRegistrationResponse(
        message=message,
        student_id=started.principal.student_id,
        resuming=started.resuming,
    )


@router.post("/resend-verification", response_model=StudentIdResponse, summary="Resend email OTP")
def resend_verification(
    req: StudentIdRequest,
    student_manager: StudentManagerDep,
) -> StudentIdResponse:
    student = student_manager.resend_verification(req.student_id)
    return _id_response(student, "Verification code resent")


@router.post("/verify-otp", response_model=StudentIdResponse, summary="Verify email OTP")
def verify_otp(
    req: StudentOtpRequest,
    student_manager: StudentManagerDep,
) -> StudentIdResponse:
    student = student_manager.verify_email_otp(req.student_id, req.otp)
    return _id_response(student, "Email verified. Please set your password.")


@router.post(
    "/complete-registration",
    response_model=StudentAuthResponse,
    summary="Set password and activate",
)
def complete_registration(
    req: StudentPasswordRequest,
    student_manager: StudentManagerDep,
) -> StudentAuthResponse:
    """Set the password after email verification and log the student in.

    Args:
        req: Student id and password.
        student_manager: Injected StudentManager instance.

    Returns:
        Session plus the now active student.
    """
    result = student_manager.complete_registration(req.student_id, req.password)
    return _auth_response(result, "Registration completed successfully")


@router.post("/login", response_model=StudentAuthResponse, summary="Student login")
def login(
    req: StudentLoginRequest,
    student_manager: StudentManagerDep,
) -> StudentAuthResponse:
    result = student_manager.login(req.email, req.password, req.university_code)
    return _auth_response(result, "Login successful")


@router.post("/request-login-otp", response_model=StudentIdResponse, summary="Request login OTP")
def request_login_otp(
    req: StudentLoginOtpRequest,
    student_manager: StudentManagerDep,
) -> StudentIdResponse:
    student = student_manager.request_login_otp(req.register_number, req.university_code)
    return _id_response(student, "OTP sent to your registered email")


@router.post("/login-with-otp", response_model=StudentAuthResponse, summary="Login with OTP")
def login_with_otp(
    req: StudentLoginWithOtpRequest,
    student_manager: StudentManagerDep,
) -> StudentAuthResponse:
    result = student_manager.login_with_otp(req.register_number, req.university_code, req.otp)
    return _auth_response(result, "Login successful")


@router.post(
    "/request-password-reset",
    response_model=StudentIdResponse,
    summary="Request password reset",
)
def request_password_reset(
    req: PasswordResetRequest,
    student_manager: StudentManagerDep,
) -> StudentIdResponse:
    student = student_manager.request_password_reset(req.email, req.university_code)
    return _id_response(student, "Password reset code sent to your email")


@router.post("/verify-reset-otp", response_model=StudentIdResponse, summary="Verify reset OTP")
def verify_reset_otp(
    req: StudentOtpRequest,
    student_manager: StudentManagerDep,
) -> StudentIdResponse:
    student = student_manager.verify_reset_otp(req.student_id, req.otp)
    return _id_response(student, "OTP verified. You can now reset your password.")


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password")
def reset_password(
    req: StudentPasswordRequest,
    student_manager: StudentManagerDep,
) -> MessageResponse:
    student_manager.reset_password(req.student_id, req.password)
    return MessageResponse(message="Password reset successful. Please login.")

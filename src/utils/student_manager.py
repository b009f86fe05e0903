"""Student lifecycle.

States: pending (email OTP issued) -> otp_verified -> active (password set).
An unfinished registration for the same tenant and email is resumed instead
of duplicated.
"""

import logging
from typing import Optional

from core.exceptions import (
    AlreadyRegisteredError,
    AuthError,
    ForbiddenError,
    PrincipalNotFoundError,
    ValidationError,
    VerificationRequiredError,
)
from models.principal import StudentModel, StudentState
from models.tenant import TenantModel
from utils.challenge_store import EMAIL_VERIFY, LOGIN_OTP, PASSWORD_RESET
from utils.email_templates import otp_email, student_welcome_email
from utils.ids import new_id, normalize_email
from utils.lifecycle import AuthResult, LifecycleManager, RegistrationStarted, otp_ttl
from utils.registration_log import METHOD_OTP_VERIFICATION

logger = logging.getLogger(__name__)

REGISTERED_STATES = (StudentState.ACTIVE.value, StudentState.INACTIVE.value)
UNFINISHED_STATES = (StudentState.PENDING.value, StudentState.OTP_VERIFIED.value)


class StudentManager(LifecycleManager):
    """Manages student registration, login and password reset."""

    duplicate_message = "A student with this email or register number already exists"

    def get_student(self, student_id: str) -> StudentModel:
        student = (
            self.db.query(StudentModel).filter(StudentModel.student_id == student_id).first()
        )
        if student is None:
            raise PrincipalNotFoundError("student", student_id)
        return student

    def _find_by_email(self, tenant_id: str, email: str) -> Optional[StudentModel]:
        return (
            self.db.query(StudentModel)
            .filter(StudentModel.tenant_id == tenant_id, StudentModel.email == email)
            .first()
        )

    def _find_by_register_number(
        self, tenant_id: str, register_number: str
    ) -> Optional[StudentModel]:
        return (
            self.db.query(StudentModel)
            .filter(
                StudentModel.tenant_id == tenant_id,
                StudentModel.register_number == register_number,
            )
            .first()
        )

    def _send_otp(self, student: StudentModel, code: str, purpose: str) -> None:
        minutes = int(otp_ttl(purpose).total_seconds() // 60)
        self.notify(otp_email(student.email, student.name, code, purpose, minutes))

    def begin_registration(
        self,
        tenant_code: str,
        name: str,
        email: str,
        register_number: str,
        division: Optional[str] = None,
        class_year: Optional[int] = None,
        semester: Optional[int] = None,
        phone: Optional[str] = None,
    ) -> RegistrationStarted:
        """Start or resume a student registration and email a verification OTP.

        Args:
            tenant_code: University code typed by the student.
            name: Full name.
            email: Email address, unique within the tenant.
            register_number: Register number, unique within the tenant.
            division: Optional division.
            class_year: Optional class year.
            semester: Optional semester.
            phone: Optional phone number.

        Returns:
            RegistrationStarted with the pending student and whether an
            earlier unfinished registration was resumed.

        Raises:
            TenantNotFoundError: Unknown university code.
            TenantInactiveError: University is inactive.
            AlreadyRegisteredError: Email already registered, or the register
                number belongs to another student.
        """
        tenant = self.tenants.resolve_tenant(tenant_code)
        email = normalize_email(email)
        register_number = (register_number or "").strip()
        if not register_number:
            raise ValidationError("Register number is required", field="register_number")

        with self.transaction():
            student = self._find_by_email(tenant.tenant_id, email)
            resuming = student is not None
            if resuming and student.state in REGISTERED_STATES:
                logger.warning("Email already registered: %s", email)
                raise AlreadyRegisteredError(
                    "This email is already registered. Please login instead."
                )

            holder = self._find_by_register_number(tenant.tenant_id, register_number)
            if holder is not None and (student is None or holder.student_id != student.student_id):
                raise AlreadyRegisteredError(
                    "A student with this register number already exists"
                )

            if student is None:
                student = StudentModel(
                    student_id=new_id(), tenant_id=tenant.tenant_id, email=email
                )
                self.db.add(student)

            student.name = name.strip()
            student.register_number = register_number
            if division is not None:
                student.division = division
            if class_year is not None:
                student.class_year = class_year
            if semester is not None:
                student.semester = semester
            if phone is not None:
                student.phone = phone
            student.state = StudentState.PENDING.value
            self.db.flush()

            issued = self.challenges.issue(student.student_id, EMAIL_VERIFY, otp_ttl(EMAIL_VERIFY))

        if resuming:
            logger.info("Resuming incomplete registration for %s", email)
        else:
            logger.info("Started student registration for %s at %s", email, tenant.university_code)
        self._send_otp(student, issued.code, EMAIL_VERIFY)
        return RegistrationStarted(principal=student, resuming=resuming)

    def resend_verification(self, student_id: str) -> StudentModel:
        """Issue a fresh email OTP for an unfinished registration."""
        student = self.get_student(student_id)
        if student.state in REGISTERED_STATES:
            raise AlreadyRegisteredError("This account is already verified. Please login instead.")

        with self.transaction():
            student.state = StudentState.PENDING.value
            issued = self.challenges.issue(student.student_id, EMAIL_VERIFY, otp_ttl(EMAIL_VERIFY))

        self._send_otp(student, issued.code, EMAIL_VERIFY)
        return student

    def verify_email_otp(self, student_id: str, otp: str) -> StudentModel:
        """Check the email OTP. The student stays pending until a password is set.

        Raises:
            PrincipalNotFoundError: Unknown student.
            AlreadyRegisteredError: Student is already active.
            ChallengeNotFoundError, ChallengeExpiredError, ChallengeMismatchError:
                From the challenge store.
        """
        student = self.get_student(student_id)
        if student.state in REGISTERED_STATES:
            raise AlreadyRegisteredError("This account is already verified. Please login instead.")

        with self.transaction():
            self.challenges.verify(student.student_id, EMAIL_VERIFY, otp)
            student.state = StudentState.OTP_VERIFIED.value

        logger.info("Email verified for student %s", student.student_id)
        return student

    def complete_registration(self, student_id: str, password: str) -> AuthResult:
        """Set the password and activate the student.

        Args:
            student_id: Student whose email OTP was verified.
            password: Chosen password.

        Returns:
            AuthResult with a ``student_registration`` session.

        Raises:
            VerificationRequiredError: Email OTP not verified yet.
            PolicyError: Password fails the complexity rules.
        """
        student = self.get_student(student_id)
        if student.state in REGISTERED_STATES:
            raise AlreadyRegisteredError("Registration is already complete. Please login instead.")
        if student.state != StudentState.OTP_VERIFIED.value:
            raise VerificationRequiredError(
                "Email verification required before completing registration",
                student_id=student.student_id,
            )
        self.policy.ensure_valid(password)

        with self.transaction():
            student.password_hash = self.policy.hash_password(password)
            student.state = StudentState.ACTIVE.value
            self.challenges.consume(student.student_id, EMAIL_VERIFY)
            self.registration_log.record(student, METHOD_OTP_VERIFICATION)

        logger.info("Student registration completed: %s", student.email)
        session = self.sessions.issue(
            student.student_id, "student", student.tenant_id, "student_registration"
        )
        self.notify(student_welcome_email(student, self._tenant(student)))
        return AuthResult(principal=student, session=session)

    def _tenant(self, student: StudentModel) -> TenantModel:
        return self.tenants.get_tenant(student.tenant_id)

    def _ensure_can_log_in(self, student: StudentModel) -> None:
        if student.state in UNFINISHED_STATES:
            raise VerificationRequiredError(
                "Please complete your registration before logging in",
                student_id=student.student_id,
            )
        if student.state == StudentState.INACTIVE.value:
            raise ForbiddenError("Your account has been deactivated")

    def _active_by_register_number(self, register_number: str, tenant_code: str) -> StudentModel:
        tenant = self.tenants.resolve_tenant(tenant_code)
        student = self._find_by_register_number(tenant.tenant_id, (register_number or "").strip())
        if student is None:
            raise PrincipalNotFoundError("student", register_number)
        self._ensure_can_log_in(student)
        return student

    def _record_login(self, student: StudentModel, login_path: str) -> AuthResult:
        student.last_login_at = self.now()
        session = self.sessions.issue(
            student.student_id, "student", student.tenant_id, login_path
        )
        return AuthResult(principal=student, session=session)

    def login(self, email: str, password: str, tenant_code: str) -> AuthResult:
        """Password login.

        Raises:
            AuthError: Unknown email or wrong password.
            VerificationRequiredError: Registration not finished; carries
                ``student_id`` so the client can resume.
            ForbiddenError: Account deactivated.
        """
        tenant = self.tenants.resolve_tenant(tenant_code)
        student = self._find_by_email(tenant.tenant_id, normalize_email(email))
        if student is None:
            raise AuthError("Invalid email or password")
        self._ensure_can_log_in(student)
        if not self.policy.verify_password(password, student.password_hash):
            logger.warning("Failed student login for %s", student.email)
            raise AuthError("Invalid email or password")

        with self.transaction():
            result = self._record_login(student, "student_password_login")
        logger.info("Student logged in: %s", student.email)
        return result

    def request_login_otp(self, register_number: str, tenant_code: str) -> StudentModel:
        """Email a login OTP to an active student."""
        student = self._active_by_register_number(register_number, tenant_code)
        with self.transaction():
            issued = self.challenges.issue(student.student_id, LOGIN_OTP, otp_ttl(LOGIN_OTP))
        self._send_otp(student, issued.code, LOGIN_OTP)
        return student

    def login_with_otp(self, register_number: str, tenant_code: str, otp: str) -> AuthResult:
        """Passwordless login with a previously requested login OTP."""
        student = self._active_by_register_number(register_number, tenant_code)
        with self.transaction():
            self.challenges.verify(student.student_id, LOGIN_OTP, otp)
            self.challenges.consume(student.student_id, LOGIN_OTP)
            result = self._record_login(student, "student_otp_login")
        logger.info("Student logged in with OTP: %s", student.email)
        return result

    def request_password_reset(self, email: str, tenant_code: str) -> StudentModel:
        """Email a password-reset OTP to an active student.

        Raises:
            PrincipalNotFoundError: No active student with this email.
        """
        tenant = self.tenants.resolve_tenant(tenant_code)
        email = normalize_email(email)
        student = self._find_by_email(tenant.tenant_id, email)
        if student is None or student.state != StudentState.ACTIVE.value:
            raise PrincipalNotFoundError("student", email)

        with self.transaction():
            issued = self.challenges.issue(
                student.student_id, PASSWORD_RESET, otp_ttl(PASSWORD_RESET)
            )
        self._send_otp(student, issued.code, PASSWORD_RESET)
        return student

    def verify_reset_otp(self, student_id: str, otp: str) -> StudentModel:
        student = self.get_student(student_id)
        with self.transaction():
            self.challenges.verify(student.student_id, PASSWORD_RESET, otp)
        return student

    def reset_password(self, student_id: str, password: str) -> StudentModel:
        """Set a new password after the reset OTP was verified.

        Raises:
            VerificationRequiredError: Reset OTP not verified.
            ChallengeExpiredError: Reset OTP expired after verification.
            PolicyError: Password fails the complexity rules.
        """
        student = self.get_student(student_id)
        self.challenges.require_verified(student.student_id, PASSWORD_RESET)
        self.policy.ensure_valid(password)

        with self.transaction():
            student.password_hash = self.policy.hash_password(password)
            self.challenges.consume(student.student_id, PASSWORD_RESET)

        logger.info("Password reset for student %s", student.student_id)
        return student

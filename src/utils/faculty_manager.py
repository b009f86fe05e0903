"""Faculty lifecycle.

Two ways in:

* Admin-created: the faculty gets a temporary password and a completion link
  (``awaiting_completion``) and becomes ``active`` once the profile is done.
* Self-service: the faculty registers with a faculty registration code and
  waits in ``pending_approval`` until an admin approves.

Either unfinished state can still log in; the token then carries
``requires_registration`` so the client can route to profile completion.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from config import REGISTRATION_COMPLETION_TTL_HOURS
from core.exceptions import (
    AlreadyRegisteredError,
    AuthError,
    ForbiddenError,
    PrincipalNotFoundError,
    ValidationError,
)
from models.principal import AdminModel, FacultyModel, FacultyState
from models.tenant import TenantModel
from utils.challenge_store import REGISTRATION_COMPLETION
from utils.email_templates import (
    faculty_approved_email,
    faculty_completion_email,
    faculty_credentials_email,
    faculty_pending_email,
)
from utils.ids import new_id, normalize_email
from utils.lifecycle import AuthResult, LifecycleManager, RegistrationStarted
from utils.registration_codes import RegistrationCodeLedger
from utils.registration_log import METHOD_ADMIN_CREATED, METHOD_SELF_REGISTRATION

logger = logging.getLogger(__name__)

# Profile fields a faculty member may fill in when completing registration
PROFILE_FIELDS = (
    "name",
    "department",
    "phone",
    "qualification",
    "specialization",
    "experience",
    "address",
)

UNFINISHED_STATES = (
    FacultyState.PENDING_APPROVAL.value,
    FacultyState.AWAITING_COMPLETION.value,
)


class FacultyManager(LifecycleManager):
    """Manages faculty onboarding, approval and login."""

    duplicate_message = "A faculty member with this email or employee ID already exists"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.codes = RegistrationCodeLedger(self.db, now=self.now)

    @property
    def completion_ttl(self) -> timedelta:
        return timedelta(hours=REGISTRATION_COMPLETION_TTL_HOURS)

    def get_faculty(self, faculty_id: str, tenant_id: Optional[str] = None) -> FacultyModel:
        """Fetch a faculty member, optionally scoped to a tenant.

        Raises:
            PrincipalNotFoundError: Unknown id, or it belongs to another tenant.
        """
        query = self.db.query(FacultyModel).filter(FacultyModel.faculty_id == faculty_id)
        if tenant_id is not None:
            query = query.filter(FacultyModel.tenant_id == tenant_id)
        faculty = query.first()
        if faculty is None:
            raise PrincipalNotFoundError("faculty", faculty_id)
        return faculty

    def list_faculty(self, tenant_id: str, state: Optional[str] = None) -> List[FacultyModel]:
        query = self.db.query(FacultyModel).filter(FacultyModel.tenant_id == tenant_id)
        if state:
            query = query.filter(FacultyModel.state == state)
        return query.order_by(FacultyModel.created_at.desc()).all()

    def _find_by_email(self, tenant_id: str, email: str) -> Optional[FacultyModel]:
        return (
            self.db.query(FacultyModel)
            .filter(FacultyModel.tenant_id == tenant_id, FacultyModel.email == email)
            .first()
        )

    def _check_employee_id(
        self, tenant_id: str, employee_id: str, faculty: Optional[FacultyModel]
    ) -> None:
        holder = (
            self.db.query(FacultyModel)
            .filter(
                FacultyModel.tenant_id == tenant_id,
                FacultyModel.employee_id == employee_id,
            )
            .first()
        )
        if holder is not None and (faculty is None or holder.faculty_id != faculty.faculty_id):
            raise AlreadyRegisteredError("Employee ID already registered")

    def _prepare(
        self, tenant_id: str, email: str, employee_id: str
    ) -> Optional[FacultyModel]:
        """Return the unfinished record to resume, or None for a new one.

        Raises:
            AlreadyRegisteredError: Email belongs to an active or inactive
                faculty, or the employee id to someone else.
        """
        faculty = self._find_by_email(tenant_id, email)
        if faculty is not None and faculty.state not in UNFINISHED_STATES:
            raise AlreadyRegisteredError("Email already registered")
        self._check_employee_id(tenant_id, employee_id, faculty)
        return faculty

    def create_by_admin(
        self,
        tenant_id: str,
        name: str,
        email: str,
        employee_id: str,
        department: str,
        temporary_password: Optional[str] = None,
    ) -> RegistrationStarted:
        """Create a faculty account on the admin's behalf.

        A temporary password and a completion link are emailed to the
        faculty member. Re-running this for an unfinished registration
        refreshes it and supersedes the earlier link.

        Args:
            tenant_id: The admin's tenant.
            name: Full name.
            email: Email, unique within the tenant.
            employee_id: Employee id, unique within the tenant.
            department: Department.
            temporary_password: Password to hand out. Generated when omitted.

        Returns:
            RegistrationStarted with the faculty in ``awaiting_completion``.

        Raises:
            AlreadyRegisteredError: Email or employee id already taken.
            PolicyError: A supplied temporary password fails the rules.
        """
        tenant = self.tenants.get_tenant(tenant_id)
        email = normalize_email(email)
        employee_id = employee_id.strip()
        if temporary_password:
            self.policy.ensure_valid(temporary_password)
        else:
            temporary_password = self.policy.generate_temporary_password()

        with self.transaction():
            faculty = self._prepare(tenant.tenant_id, email, employee_id)
            resuming = faculty is not None
            if faculty is None:
                faculty = FacultyModel(
                    faculty_id=new_id(), tenant_id=tenant.tenant_id, email=email
                )
                self.db.add(faculty)
            faculty.name = name.strip()
            faculty.employee_id = employee_id
            faculty.department = department.strip()
            faculty.password_hash = self.policy.hash_password(temporary_password)
            faculty.state = FacultyState.AWAITING_COMPLETION.value
            self.db.flush()

            issued = self.challenges.issue(
                faculty.faculty_id, REGISTRATION_COMPLETION, self.completion_ttl
            )
            if not resuming:
                self.registration_log.record(faculty, METHOD_ADMIN_CREATED)

        logger.info("Faculty created by admin: %s", email)
        self.notify(
            faculty_credentials_email(
                faculty,
                tenant,
                temporary_password,
                issued.code,
                REGISTRATION_COMPLETION_TTL_HOURS,
            )
        )
        return RegistrationStarted(principal=faculty, resuming=resuming)

    def self_register(
        self,
        registration_code: str,
        tenant_code: str,
        name: str,
        email: str,
        employee_id: str,
        department: str,
        password: str,
    ) -> RegistrationStarted:
        """Register with a faculty registration code, pending admin approval.

        Creating the faculty and consuming the code happen in one
        transaction: if the code was consumed concurrently, nothing is
        created.

        A pending registration for the same email is resumed only when the
        password matches the one it was made with.

        Raises:
            TenantNotFoundError, TenantInactiveError: Bad university code.
            RegistrationCodeNotFoundError, InvalidRegistrationCodeError:
                The registration code cannot be used.
            PolicyError: Password fails the rules.
            AlreadyRegisteredError: Email or employee id already taken,
                or a pending registration was made with another password.
            CodeAlreadyUsedError: Lost the race for the code.
        """
        tenant = self.tenants.resolve_tenant(tenant_code)
        self.codes.validate(registration_code, "faculty", tenant.tenant_id)
        self.policy.ensure_valid(password)
        email = normalize_email(email)
        employee_id = employee_id.strip()

        with self.transaction():
            faculty = self._prepare(tenant.tenant_id, email, employee_id)
            resuming = faculty is not None
            if resuming and faculty.state != FacultyState.PENDING_APPROVAL.value:
                raise AlreadyRegisteredError(
                    "An account was already created for this email. "
                    "Check your inbox for the completion link."
                )
            # Only the original registrant may refresh a pending record
            if resuming and not self.policy.verify_password(password, faculty.password_hash):
                logger.warning("Rejected resume of pending faculty registration: %s", email)
                raise AlreadyRegisteredError(
                    "A registration for this email is already awaiting approval"
                )
            if faculty is None:
                faculty = FacultyModel(
                    faculty_id=new_id(), tenant_id=tenant.tenant_id, email=email
                )
                self.db.add(faculty)
            faculty.name = name.strip()
            faculty.employee_id = employee_id
            faculty.department = department.strip()
            faculty.password_hash = self.policy.hash_password(password)
            faculty.state = FacultyState.PENDING_APPROVAL.value
            self.db.flush()

            self.codes.consume(registration_code, faculty.faculty_id)
            if not resuming:
                self.registration_log.record(faculty, METHOD_SELF_REGISTRATION)

        logger.info("Faculty self-registered, pending approval: %s", email)
        admin = self.db.query(AdminModel).filter(AdminModel.tenant_id == tenant.tenant_id).first()
        if admin is not None:
            self.notify(faculty_pending_email(admin, faculty))
        return RegistrationStarted(principal=faculty, resuming=resuming)

    def approve(self, faculty_id: str, tenant_id: str) -> FacultyModel:
        """Approve a self-registered faculty member.

        Raises:
            ValidationError: The faculty is not awaiting approval.
        """
        faculty = self.get_faculty(faculty_id, tenant_id)
        if faculty.state != FacultyState.PENDING_APPROVAL.value:
            raise ValidationError("Faculty member is not awaiting approval")

        with self.transaction():
            faculty.state = FacultyState.ACTIVE.value

        logger.info("Faculty approved: %s", faculty.email)
        self.notify(faculty_approved_email(faculty, self._tenant(faculty)))
        return faculty

    def deactivate(self, faculty_id: str, tenant_id: str) -> FacultyModel:
        faculty = self.get_faculty(faculty_id, tenant_id)
        with self.transaction():
            faculty.state = FacultyState.INACTIVE.value
            self.challenges.consume(faculty.faculty_id, REGISTRATION_COMPLETION)
        logger.info("Faculty deactivated: %s", faculty.email)
        return faculty

    def _tenant(self, faculty: FacultyModel) -> TenantModel:
        return self.tenants.get_tenant(faculty.tenant_id)

    def login(self, email: str, password: str, tenant_code: str) -> AuthResult:
        """Password login.

        Unfinished accounts still get a session, flagged
        ``requires_registration``.

        Raises:
            AuthError: Unknown email or wrong password.
            ForbiddenError: Account deactivated.
        """
        tenant = self.tenants.resolve_tenant(tenant_code)
        faculty = self._find_by_email(tenant.tenant_id, normalize_email(email))
        if faculty is None or not self.policy.verify_password(password, faculty.password_hash):
            logger.warning("Failed faculty login for %s", normalize_email(email))
            raise AuthError("Invalid credentials")
        if faculty.state == FacultyState.INACTIVE.value:
            raise ForbiddenError("Your account has been deactivated")

        requires_registration = faculty.state in UNFINISHED_STATES
        with self.transaction():
            faculty.last_login_at = self.now()
            session = self.sessions.issue(
                faculty.faculty_id,
                "faculty",
                faculty.tenant_id,
                "faculty_login",
                requires_registration=requires_registration,
            )
        logger.info("Faculty logged in: %s", faculty.email)
        return AuthResult(principal=faculty, session=session)

    def complete_registration(
        self,
        token: str,
        profile: Optional[Dict[str, Any]] = None,
        new_password: Optional[str] = None,
    ) -> FacultyModel:
        """Finish an admin-created account from its completion link.

        Args:
            token: Completion token from the emailed link.
            profile: Profile fields to set (see PROFILE_FIELDS); others are ignored.
            new_password: Optional replacement for the temporary password.

        Returns:
            The now active faculty.

        Raises:
            ChallengeNotFoundError: Unknown or superseded token.
            ChallengeExpiredError: Token is older than the completion TTL.
            PolicyError: New password fails the rules.
        """
        challenge = self.challenges.find_by_code(REGISTRATION_COMPLETION, token)
        faculty = self.get_faculty(challenge.subject_key)
        if faculty.state == FacultyState.INACTIVE.value:
            raise ForbiddenError("Your account has been deactivated")
        if new_password:
            self.policy.ensure_valid(new_password)

        with self.transaction():
            for field, value in (profile or {}).items():
                if field in PROFILE_FIELDS and value is not None:
                    setattr(faculty, field, value)
            if new_password:
                faculty.password_hash = self.policy.hash_password(new_password)
            faculty.state = FacultyState.ACTIVE.value
            self.challenges.consume(faculty.faculty_id, REGISTRATION_COMPLETION)

        logger.info("Faculty registration completed: %s", faculty.email)
        return faculty

    def change_password(self, faculty_id: str, current_password: str, new_password: str) -> None:
        """Change the password of a logged-in faculty member.

        Raises:
            AuthError: Current password is wrong.
            ValidationError: New password equals the current one.
            PolicyError: New password fails the rules.
        """
        faculty = self.get_faculty(faculty_id)
        if not self.policy.verify_password(current_password, faculty.password_hash):
            logger.warning("Password change failed, wrong current password: %s", faculty.email)
            raise AuthError("Current password is incorrect")
        self.policy.ensure_valid(new_password)
        if self.policy.verify_password(new_password, faculty.password_hash):
            raise ValidationError("New password must be different from current password")

        with self.transaction():
            faculty.password_hash = self.policy.hash_password(new_password)
        logger.info("Password changed for faculty: %s", faculty.email)

    def resend_completion(self, faculty_id: str, tenant_id: str) -> FacultyModel:
        """Email a fresh completion link; earlier links stop working.

        Raises:
            ValidationError: Registration is not awaiting completion.
        """
        faculty = self.get_faculty(faculty_id, tenant_id)
        if faculty.state != FacultyState.AWAITING_COMPLETION.value:
            raise ValidationError("Faculty registration is not awaiting completion")

        with self.transaction():
            issued = self.challenges.issue(
                faculty.faculty_id, REGISTRATION_COMPLETION, self.completion_ttl
            )

        self.notify(
            faculty_completion_email(
                faculty, self._tenant(faculty), issued.code, REGISTRATION_COMPLETION_TTL_HOURS
            )
        )
        return faculty

"""Admin signup and login.

An admin registers once, together with the university they run: an OTP is
emailed, and verifying it creates the tenant and the admin in one commit.
"""

import hmac
import logging
from typing import Optional

from config import SUPER_ADMIN_CODE, SUPER_ADMIN_CODE_REQUIRED
from core.exceptions import (
    AlreadyRegisteredError,
    AuthError,
    ForbiddenError,
    InternalError,
    PrincipalNotFoundError,
    TenantInactiveError,
    ValidationError,
)
from models.principal import AdminModel, AdminState
from utils.challenge_store import ADMIN_SIGNUP
from utils.email_templates import admin_welcome_email, otp_email
from utils.ids import new_id, normalize_email
from utils.lifecycle import AuthResult, LifecycleManager, otp_ttl

logger = logging.getLogger(__name__)


class AdminManager(LifecycleManager):
    """Manages administrator signup and login."""

    duplicate_message = "An admin with this email already exists"

    def __init__(
        self,
        *args,
        super_admin_code: Optional[str] = SUPER_ADMIN_CODE,
        super_admin_code_required: bool = SUPER_ADMIN_CODE_REQUIRED,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.super_admin_code = super_admin_code
        self.super_admin_code_required = super_admin_code_required

    def get_admin(self, admin_id: str) -> AdminModel:
        admin = self.db.query(AdminModel).filter(AdminModel.admin_id == admin_id).first()
        if admin is None:
            raise PrincipalNotFoundError("admin", admin_id)
        return admin

    def _find_by_email(self, email: str) -> Optional[AdminModel]:
        return self.db.query(AdminModel).filter(AdminModel.email == email).first()

    def email_exists(self, email: str) -> bool:
        return self._find_by_email(normalize_email(email)) is not None

    def _check_super_admin_code(self, supplied: Optional[str]) -> None:
        if not self.super_admin_code_required:
            return
        if not self.super_admin_code:
            logger.error("SUPER_ADMIN_CODE_REQUIRED is set but SUPER_ADMIN_CODE is empty")
            raise InternalError("Admin registration is not configured")
        if not supplied or not hmac.compare_digest(supplied.strip(), self.super_admin_code):
            logger.warning("Admin signup rejected: wrong super admin code")
            raise ValidationError("Invalid super admin code", field="super_admin_code")

    def generate_otp(
        self,
        email: str,
        name: str,
        university_name: str,
        super_admin_code: Optional[str] = None,
    ) -> None:
        """Start an admin signup by emailing an OTP.

        The pending name and university name ride along in the challenge
        payload until the OTP is verified.

        Args:
            email: Admin email, globally unique.
            name: Admin's full name.
            university_name: Name of the university to create.
            super_admin_code: Shared secret, checked when required.

        Raises:
            ValidationError: Missing fields or wrong super admin code.
            AlreadyRegisteredError: Email already used by an admin.
        """
        self._check_super_admin_code(super_admin_code)
        email = normalize_email(email)
        name = (name or "").strip()
        university_name = (university_name or "").strip()
        if not name or not university_name:
            raise ValidationError("Name and university name are required")
        if self._find_by_email(email) is not None:
            raise AlreadyRegisteredError("Email is already registered")

        with self.transaction():
            issued = self.challenges.issue(
                email,
                ADMIN_SIGNUP,
                otp_ttl(ADMIN_SIGNUP),
                payload={"name": name, "university_name": university_name},
            )

        logger.info("Admin signup OTP issued for %s", email)
        minutes = int(otp_ttl(ADMIN_SIGNUP).total_seconds() // 60)
        self.notify(otp_email(email, name, issued.code, ADMIN_SIGNUP, minutes))

    def verify_otp(self, email: str, otp: str, password: str) -> AuthResult:
        """Verify the signup OTP and create the university and its admin.

        Args:
            email: Email the OTP was sent to.
            otp: Code from the email.
            password: Admin password.

        Returns:
            AuthResult with an ``admin_signup`` session.

        Raises:
            ChallengeNotFoundError, ChallengeExpiredError, ChallengeMismatchError:
                From the challenge store.
            PolicyError: Password fails the rules.
            AlreadyRegisteredError: Email registered meanwhile.
        """
        email = normalize_email(email)
        self.policy.ensure_valid(password)

        with self.transaction():
            challenge = self.challenges.verify(email, ADMIN_SIGNUP, otp)
            payload = challenge.payload or {}
            if self._find_by_email(email) is not None:
                raise AlreadyRegisteredError("Email is already registered")

            tenant = self.tenants.create_tenant(payload.get("university_name", ""))
            admin = AdminModel(
                admin_id=new_id(),
                tenant_id=tenant.tenant_id,
                name=payload.get("name") or email,
                email=email,
                password_hash=self.policy.hash_password(password),
                state=AdminState.ACTIVE.value,
                last_login_at=self.now(),
            )
            self.db.add(admin)
            self.db.flush()
            self.challenges.consume(email, ADMIN_SIGNUP)

        logger.info("Admin %s registered university %s", email, tenant.university_code)
        session = self.sessions.issue(admin.admin_id, "admin", tenant.tenant_id, "admin_signup")
        self.notify(admin_welcome_email(admin, tenant))
        return AuthResult(principal=admin, session=session)

    def login(self, email: str, password: str) -> AuthResult:
        """Password login.

        Raises:
            AuthError: Unknown email or wrong password.
            ForbiddenError: Admin deactivated.
            TenantInactiveError: The admin's university is inactive.
        """
        admin = self._find_by_email(normalize_email(email))
        if admin is None or not self.policy.verify_password(password, admin.password_hash):
            logger.warning("Failed admin login for %s", normalize_email(email))
            raise AuthError("Invalid email or password")
        if admin.state != AdminState.ACTIVE.value:
            raise ForbiddenError("Your account has been deactivated")
        if admin.tenant.status != "active":
            raise TenantInactiveError(admin.tenant.university_code)

        with self.transaction():
            admin.last_login_at = self.now()
            session = self.sessions.issue(admin.admin_id, "admin", admin.tenant_id, "admin_login")
        logger.info("Admin logged in: %s", admin.email)
        return AuthResult(principal=admin, session=session)

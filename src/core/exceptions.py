"""Custom exception classes for the Campus Identity service.

This module defines the error taxonomy shared by every manager. Each class
carries the HTTP status and a machine-readable code so the API layer can
render it without knowing which flow raised it.
"""

from typing import Any, Dict, List, Optional


class IdentityError(Exception):
    """Base exception for all Campus Identity errors."""

    status_code = 400
    code = "identity_error"

    def __init__(self, message: str, **extra: Any):
        """Initialize the exception.

        Args:
            message: User-facing message.
            **extra: Additional fields rendered in the error response body.
        """
        self.message = message
        self.extra: Dict[str, Any] = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "code": self.code, "message": self.message}
        body.update(self.extra)
        return body


class ValidationError(IdentityError):
    """Raised when input is malformed or missing."""

    status_code = 400
    code = "validation_error"


class ChallengeMismatchError(ValidationError):
    """Raised when a supplied OTP does not match the live challenge."""

    code = "challenge_mismatch"

    def __init__(self, message: str = "Invalid OTP. Please check and try again."):
        super().__init__(message)


class VerificationRequiredError(ValidationError):
    """Raised when a step is attempted before its challenge was verified."""

    code = "verification_required"


class InvalidRegistrationCodeError(ValidationError):
    """Raised when a registration code exists but cannot be used."""

    code = "invalid_registration_code"


class NotFoundError(IdentityError):
    """Raised when a tenant, principal, code or challenge is absent."""

    status_code = 404
    code = "not_found"


class TenantNotFoundError(NotFoundError):
    """Raised when no tenant matches a university code."""

    code = "tenant_not_found"

    def __init__(self, university_code: str):
        self.university_code = university_code
        super().__init__(
            "Invalid university code. Please check and try again.",
            university_code=university_code,
        )


class PrincipalNotFoundError(NotFoundError):
    """Raised when an admin, faculty or student record cannot be found."""

    code = "principal_not_found"

    def __init__(self, role: str, principal_id: Any):
        self.role = role
        self.principal_id = principal_id
        super().__init__(f"{role.capitalize()} '{principal_id}' not found")


class RegistrationCodeNotFoundError(NotFoundError):
    """Raised when a registration code does not exist."""

    code = "registration_code_not_found"

    def __init__(self, message: str = "Registration code not found"):
        super().__init__(message)


class ChallengeNotFoundError(NotFoundError):
    """Raised when no live challenge exists for a subject and purpose."""

    code = "challenge_not_found"

    def __init__(self, message: str = "No code was requested. Please request a new one."):
        super().__init__(message)


class ConflictError(IdentityError):
    """Raised when an operation collides with existing state."""

    status_code = 409
    code = "conflict"


class AlreadyRegisteredError(ConflictError):
    """Raised for a duplicate email, employee id or register number."""

    code = "already_registered"


class CodeAlreadyUsedError(ConflictError):
    """Raised when a registration code was consumed by someone else."""

    code = "code_already_used"

    def __init__(self, message: str = "Registration code has already been used"):
        super().__init__(message)


class ExpiredError(IdentityError):
    """Raised when a challenge, code or token is past its TTL."""

    status_code = 400
    code = "expired"

    def __init__(self, message: str):
        super().__init__(message, expired=True)


class ChallengeExpiredError(ExpiredError):
    """Raised when an OTP or completion token has expired."""

    code = "challenge_expired"

    def __init__(self, message: str = "Code has expired. Please request a new one."):
        super().__init__(message)


class TokenExpiredError(ExpiredError):
    """Raised when a session token is past its expiry."""

    status_code = 401
    code = "token_expired"

    def __init__(self, message: str = "Session has expired. Please log in again."):
        super().__init__(message)


class AuthError(IdentityError):
    """Raised on bad credentials or an invalid token signature."""

    status_code = 401
    code = "auth_error"


class InvalidTokenError(AuthError):
    """Raised when a session token fails verification."""

    code = "invalid_token"

    def __init__(self, message: str = "Invalid authentication credentials"):
        super().__init__(message)


class ForbiddenError(IdentityError):
    """Raised when the caller is authenticated but not allowed."""

    status_code = 403
    code = "forbidden"


class TenantInactiveError(ForbiddenError):
    """Raised when a tenant exists but is not active."""

    code = "tenant_inactive"

    def __init__(self, university_code: str):
        self.university_code = university_code
        super().__init__(
            "This university code is not active", university_code=university_code
        )


class PolicyError(IdentityError):
    """Raised when a password violates the complexity policy."""

    status_code = 400
    code = "password_policy"

    def __init__(self, violations: List[str], message: Optional[str] = None):
        self.violations = list(violations)
        super().__init__(
            message or "Password does not meet the complexity requirements",
            violations=self.violations,
        )


class InternalError(IdentityError):
    """Raised when storage or transport fails unexpectedly."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)

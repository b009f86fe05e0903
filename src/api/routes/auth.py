"""Authentication routes.

This module handles admin signup/login plus the bearer-token dependencies the
other routers use to authenticate callers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.dependencies import AdminManagerDep, SessionIssuerDep
from core.exceptions import ForbiddenError, InvalidTokenError, PrincipalNotFoundError
from models.principal import AdminModel
from schemas.admin import (
    AdminAuthResponse,
    AdminGenerateOtpRequest,
    AdminInfo,
    AdminLoginRequest,
    AdminVerifyOtpRequest,
    CheckEmailRequest,
    CheckEmailResponse,
)
from schemas.token import CurrentPrincipalResponse, MessageResponse, SessionInfo
from utils.session_issuer import TokenClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

# HTTP Bearer token security. Missing headers are reported as InvalidTokenError
# so every auth failure has the same body shape.
security = HTTPBearer(auto_error=False)


def verify_token(
    sessions: SessionIssuerDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenClaims:
    """Verify JWT token from Authorization header.

    Args:
        sessions: Injected SessionIssuer.
        credentials: HTTP Bearer token credentials.

    Returns:
        Verified token claims.

    Raises:
        InvalidTokenError: Header missing or token invalid.
        TokenExpiredError: Token is past its expiry.
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenError("Not authenticated")
    return sessions.verify(credentials.credentials)


def require_role(role: str):
    """Build a dependency that admits only tokens of the given role."""

    def dependency(claims: TokenClaims = Depends(verify_token)) -> TokenClaims:
        if claims.role != role:
            raise ForbiddenError(f"{role.capitalize()} access required")
        return claims

    return dependency


require_faculty = require_role("faculty")


def get_current_admin(
    admin_manager: AdminManagerDep,
    claims: TokenClaims = Depends(require_role("admin")),
) -> AdminModel:
    """Get current authenticated admin.

    Args:
        admin_manager: Injected AdminManager instance.
        claims: Verified admin token claims.

    Returns:
        The AdminModel the token belongs to.

    Raises:
        InvalidTokenError: Admin no longer exists.
        ForbiddenError: Admin deactivated.
    """
    try:
        admin = admin_manager.get_admin(claims.principal_id)
    except PrincipalNotFoundError as exc:
        raise InvalidTokenError("Admin not found") from exc
    if admin.state != "active":
        raise ForbiddenError("Your account has been deactivated")
    return admin


def build_admin_info(admin: AdminModel) -> AdminInfo:
    return AdminInfo(
        admin_id=admin.admin_id,
        name=admin.name,
        email=admin.email,
        tenant_id=admin.tenant_id,
        status=admin.status,
        university_name=admin.tenant.name if admin.tenant else None,
        university_code=admin.tenant.university_code if admin.tenant else None,
        created_at=admin.created_at,
        last_login_at=admin.last_login_at,
    )


@router.post("/admin/generate-otp", response_model=MessageResponse, summary="Start admin signup")
def admin_generate_otp(
    req: AdminGenerateOtpRequest,
    admin_manager: AdminManagerDep,
) -> MessageResponse:
    """Email a signup OTP to a prospective admin.

    Args:
        req: Email, name, university name and (when enforced) the super
            admin code.
        admin_manager: Injected AdminManager instance.

    Returns:
        Confirmation message.
    """
    admin_manager.generate_otp(
        req.email, req.name, req.university_name, req.super_admin_code
    )
    return MessageResponse(message="OTP sent to your email")


@router.post("/admin/verify-otp", response_model=AdminAuthResponse, summary="Finish admin signup")
def admin_verify_otp(
    req: AdminVerifyOtpRequest,
    admin_manager: AdminManagerDep,
) -> AdminAuthResponse:
    """Verify the signup OTP, create the university and log the admin in.

    Args:
        req: Email, OTP and password.
        admin_manager: Injected AdminManager instance.

    Returns:
        Session plus the new admin, including the university code.
    """
    result = admin_manager.verify_otp(req.email, req.otp, req.password)
    return AdminAuthResponse(
        message="Registration successful",
        session=SessionInfo.from_issued(result.session),
        admin=build_admin_info(result.principal),
    )


@router.post("/admin/login", response_model=AdminAuthResponse, summary="Admin login")
def admin_login(
    req: AdminLoginRequest,
    admin_manager: AdminManagerDep,
) -> AdminAuthResponse:
    result = admin_manager.login(req.email, req.password)
    return AdminAuthResponse(
        message="Login successful",
        session=SessionInfo.from_issued(result.session),
        admin=build_admin_info(result.principal),
    )


@router.post("/admin/check-email", response_model=CheckEmailResponse, summary="Check admin email")
def admin_check_email(
    req: CheckEmailRequest,
    admin_manager: AdminManagerDep,
) -> CheckEmailResponse:
    return CheckEmailResponse(exists=admin_manager.email_exists(req.email))


@router.get("/me", response_model=CurrentPrincipalResponse, summary="Current session")
def get_me(claims: TokenClaims = Depends(verify_token)) -> CurrentPrincipalResponse:
    """Return the claims of the caller's session token."""
    return CurrentPrincipalResponse.from_claims(claims)


@router.post("/logout", response_model=MessageResponse, summary="Logout")
def logout(claims: TokenClaims = Depends(verify_token)) -> MessageResponse:
    """Acknowledge logout.

    Sessions are stateless; the client discards its token.
    """
    logger.info("%s %s logged out", claims.role, claims.principal_id)
    return MessageResponse(message="Logged out")

"""Registration code routes.

Admins generate, list, revoke and delete codes for their university. The
verify endpoint is public so the registration form can check a code early.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.routes.auth import get_current_admin
from core.dependencies import RegistrationCodeLedgerDep, TenantDirectoryDep
from core.exceptions import TenantInactiveError
from models.principal import AdminModel
from schemas.registration_code import (
    GenerateRegistrationCodeRequest,
    RegistrationCodeIdRequest,
    RegistrationCodeInfo,
    RegistrationCodeListResponse,
    RegistrationCodeResponse,
    VerifyRegistrationCodeResponse,
)
from schemas.token import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Registration Code"])


@router.get(
    "/registration-codes",
    response_model=RegistrationCodeListResponse,
    summary="List registration codes",
)
def list_registration_codes(
    ledger: RegistrationCodeLedgerDep,
    code_type: Optional[str] = Query(default=None, pattern="^(faculty|student)$"),
    admin: AdminModel = Depends(get_current_admin),
) -> RegistrationCodeListResponse:
    """List the admin's registration codes, newest first.

    Args:
        ledger: Injected RegistrationCodeLedger instance.
        code_type: Optional filter.
        admin: Current authenticated admin.

    Returns:
        Codes with the principal that used each one.
    """
    items = ledger.list_codes(admin.tenant_id, code_type)
    return RegistrationCodeListResponse(
        codes=[RegistrationCodeInfo.model_validate(item) for item in items]
    )


@router.post(
    "/registration-code",
    response_model=RegistrationCodeResponse,
    summary="Generate a registration code",
)
def generate_registration_code(
    req: GenerateRegistrationCodeRequest,
    ledger: RegistrationCodeLedgerDep,
    admin: AdminModel = Depends(get_current_admin),
) -> RegistrationCodeResponse:
    model = ledger.generate(req.code_type, admin.tenant_id, admin.admin_id, req.expires_in_days)
    return RegistrationCodeResponse(
        message=f"{req.code_type.capitalize()} registration code generated",
        code=RegistrationCodeInfo.model_validate(model),
    )


@router.get(
    "/verify-registration-code/{code}",
    response_model=VerifyRegistrationCodeResponse,
    summary="Check a registration code",
)
def verify_registration_code(
    code: str,
    ledger: RegistrationCodeLedgerDep,
    tenants: TenantDirectoryDep,
    code_type: str = Query(default="faculty", pattern="^(faculty|student)$"),
) -> VerifyRegistrationCodeResponse:
    """Check that a code is usable and say which university it belongs to.

    Args:
        code: Registration code.
        ledger: Injected RegistrationCodeLedger instance.
        tenants: Injected TenantDirectory instance.
        code_type: Registration the code is meant for.

    Returns:
        Code type, university and expiry.
    """
    model = ledger.validate(code, code_type)
    tenant = tenants.get_tenant(model.tenant_id)
    if tenant.status != "active":
        raise TenantInactiveError(tenant.university_code)
    return VerifyRegistrationCodeResponse(
        code_type=model.code_type,
        university_name=tenant.name,
        university_code=tenant.university_code,
        expires_at=model.expires_at,
    )


@router.post(
    "/registration-code/deactivate",
    response_model=RegistrationCodeResponse,
    summary="Deactivate a registration code",
)
def deactivate_registration_code(
    req: RegistrationCodeIdRequest,
    ledger: RegistrationCodeLedgerDep,
    admin: AdminModel = Depends(get_current_admin),
) -> RegistrationCodeResponse:
    model = ledger.deactivate(req.code_id, admin.tenant_id)
    return RegistrationCodeResponse(
        message="Registration code deactivated",
        code=RegistrationCodeInfo.model_validate(model),
    )


@router.post(
    "/registration-code/delete",
    response_model=MessageResponse,
    summary="Delete a registration code",
)
def delete_registration_code(
    req: RegistrationCodeIdRequest,
    ledger: RegistrationCodeLedgerDep,
    admin: AdminModel = Depends(get_current_admin),
) -> MessageResponse:
    """Delete a code. Used codes are kept for three months after use."""
    ledger.delete(req.code_id, admin.tenant_id)
    return MessageResponse(message="Registration code deleted successfully")

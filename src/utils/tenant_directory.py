"""Tenant directory.

Maps university codes to tenants. Every faculty and student lookup is scoped
by the tenant a code resolves to.
"""

import logging
import re
import secrets
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import (
    ConflictError,
    NotFoundError,
    TenantInactiveError,
    TenantNotFoundError,
    ValidationError,
)
from models.tenant import TenantModel
from utils.ids import new_id

logger = logging.getLogger(__name__)

TENANT_STATUSES = ("active", "inactive")
MAX_CODE_ATTEMPTS = 10


def derive_university_code(name: str) -> str:
    """Build a code such as ``STA-3F9A0C`` from a university name."""
    prefix = re.sub(r"[^A-Za-z0-9]", "", name)[:3].upper().ljust(3, "X")
    return f"{prefix}-{secrets.token_hex(3).upper()}"


def normalize_university_code(code: str) -> str:
    return (code or "").strip().upper()


class TenantDirectory:
    """Manages tenant persistence using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize TenantDirectory.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def find_by_code(self, code: str) -> TenantModel:
        """Look a tenant up by code regardless of its status.

        Raises:
            TenantNotFoundError: No tenant has this code.
        """
        normalized = normalize_university_code(code)
        if not normalized:
            raise ValidationError("University code is required", field="university_code")
        tenant = (
            self.db.query(TenantModel)
            .filter(TenantModel.university_code == normalized)
            .first()
        )
        if tenant is None:
            raise TenantNotFoundError(normalized)
        return tenant

    def resolve_tenant(self, code: str) -> TenantModel:
        """Resolve an active tenant from a university code.

        The lookup is case-insensitive and has no side effects.

        Args:
            code: University code as typed by the user.

        Returns:
            The active TenantModel.

        Raises:
            TenantNotFoundError: No tenant has this code.
            TenantInactiveError: The tenant exists but is not active.
        """
        tenant = self.find_by_code(code)
        if tenant.status != "active":
            raise TenantInactiveError(tenant.university_code)
        return tenant

    def get_tenant(self, tenant_id: str) -> TenantModel:
        tenant = self.db.query(TenantModel).filter(TenantModel.tenant_id == tenant_id).first()
        if tenant is None:
            raise NotFoundError(f"University '{tenant_id}' not found")
        return tenant

    def create_tenant(self, name: str, university_code: Optional[str] = None) -> TenantModel:
        """Create a tenant with a freshly derived university code.

        Flushes only; the admin signup commits tenant and admin together.

        Args:
            name: University name.
            university_code: Fixed code to use instead of a derived one
                (seeding). Not retried on collision.

        Returns:
            The new TenantModel.

        Raises:
            ValidationError: Name is blank.
            ConflictError: No free code after several attempts.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("University name is required", field="university_name")

        attempts = 1 if university_code else MAX_CODE_ATTEMPTS
        for _ in range(attempts):
            code = normalize_university_code(university_code) or derive_university_code(name)
            exists = (
                self.db.query(TenantModel.tenant_id)
                .filter(TenantModel.university_code == code)
                .first()
            )
            if exists:
                continue
            tenant = TenantModel(
                tenant_id=new_id(), name=name, university_code=code, status="active"
            )
            try:
                with self.db.begin_nested():
                    self.db.add(tenant)
            except IntegrityError:
                logger.warning("University code %s taken concurrently, retrying", code)
                continue
            logger.info("Created tenant %s (%s)", name, code)
            return tenant

        if university_code:
            raise ConflictError(
                f"University code '{normalize_university_code(university_code)}' is already taken"
            )
        raise ConflictError("Failed to generate a unique university code")

    def set_status(self, tenant_id: str, status: str) -> TenantModel:
        if status not in TENANT_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'. Must be one of: {', '.join(TENANT_STATUSES)}"
            )
        tenant = self.get_tenant(tenant_id)
        tenant.status = status
        self.db.commit()
        self.db.refresh(tenant)
        logger.info("Tenant %s set to %s", tenant.university_code, status)
        return tenant

    def list_tenants(self) -> List[TenantModel]:
        return self.db.query(TenantModel).order_by(TenantModel.created_at.asc()).all()

    def public_info(self, code: str) -> Dict[str, str]:
        """Name and code of an active tenant, safe to show unauthenticated."""
        tenant = self.resolve_tenant(code)
        return {"name": tenant.name, "university_code": tenant.university_code}

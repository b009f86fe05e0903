"""Registration audit log."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from models.principal import FacultyModel, StudentModel
from models.registration_log import RegistrationLogModel

logger = logging.getLogger(__name__)

METHOD_ADMIN_CREATED = "admin-created"
METHOD_SELF_REGISTRATION = "self-registration"
METHOD_OTP_VERIFICATION = "otp-verification"


class RegistrationLog:
    """Writes one row per principal that reaches a registered state."""

    def __init__(self, db: Session):
        self.db = db

    def record(self, principal, method: str) -> RegistrationLogModel:
        """Add a log row in the caller's transaction.

        Args:
            principal: FacultyModel or StudentModel that was registered.
            method: How the principal registered.

        Returns:
            The flushed RegistrationLogModel.
        """
        entry = RegistrationLogModel(
            tenant_id=principal.tenant_id,
            role=principal.role,
            principal_id=principal.principal_id,
            name=principal.name,
            email=principal.email,
            employee_id=principal.employee_id if isinstance(principal, FacultyModel) else None,
            register_number=(
                principal.register_number if isinstance(principal, StudentModel) else None
            ),
            method=method,
        )
        self.db.add(entry)
        self.db.flush()
        logger.info(
            "Registration: %s %s (%s) via %s",
            principal.role,
            principal.name,
            principal.email,
            method,
        )
        return entry

    def list_logs(
        self, tenant_id: str, role: Optional[str] = None, limit: int = 100
    ) -> List[RegistrationLogModel]:
        query = self.db.query(RegistrationLogModel).filter(
            RegistrationLogModel.tenant_id == tenant_id
        )
        if role:
            query = query.filter(RegistrationLogModel.role == role)
        return (
            query.order_by(RegistrationLogModel.created_at.desc(), RegistrationLogModel.id.desc())
            .limit(limit)
            .all()
        )

"""Registration code ledger.

One-time codes an admin hands out so faculty can self-register against a
tenant. Student codes can be generated, listed and checked, but are reserved:
student registration goes through the university code and never consumes one.

Consumption is a single conditional UPDATE, so two callers racing for the
same code cannot both win.
"""

import logging
import secrets
import string
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import REGISTRATION_CODE_TTL_DAYS, USED_CODE_RETENTION_DAYS
from core.exceptions import (
    CodeAlreadyUsedError,
    ConflictError,
    InvalidRegistrationCodeError,
    RegistrationCodeNotFoundError,
    ValidationError,
)
from models.principal import FacultyModel, StudentModel
from models.registration_code import RegistrationCodeModel
from utils.clock import Clock, as_utc, utc_now
from utils.ids import new_id

logger = logging.getLogger(__name__)

CODE_PREFIXES = {"faculty": "FAC", "student": "STU"}
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_RANDOM_LENGTH = 8
MAX_GENERATION_ATTEMPTS = 10


def _random_code(code_type: str) -> str:
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_RANDOM_LENGTH))
    return f"{CODE_PREFIXES[code_type]}-{suffix}"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class RegistrationCodeLedger:
    """Manages registration code persistence using SQLAlchemy."""

    def __init__(self, db: Session, now: Clock = utc_now):
        """Initialize RegistrationCodeLedger.

        Args:
            db: SQLAlchemy Session.
            now: Clock returning an aware UTC datetime.
        """
        self.db = db
        self.now = now

    def generate(
        self,
        code_type: str,
        tenant_id: str,
        created_by: str,
        expires_in_days: Optional[int] = None,
    ) -> RegistrationCodeModel:
        """Generate and persist a new registration code.

        Args:
            code_type: 'faculty' or 'student'. Student codes are reserved and
                not consumed by any registration flow.
            tenant_id: Tenant the code is scoped to.
            created_by: Id of the admin generating it.
            expires_in_days: Lifetime in days. Defaults to REGISTRATION_CODE_TTL_DAYS.

        Returns:
            The committed RegistrationCodeModel.

        Raises:
            ValidationError: If the type or lifetime is invalid.
            ConflictError: If no unique code could be generated.
        """
        if code_type not in CODE_PREFIXES:
            raise ValidationError(
                "Invalid code type. Must be 'faculty' or 'student'",
                field="code_type",
            )
        days = REGISTRATION_CODE_TTL_DAYS if expires_in_days is None else expires_in_days
        if days <= 0:
            raise ValidationError("Expiry must be at least one day", field="expires_in_days")

        for _ in range(MAX_GENERATION_ATTEMPTS):
            model = RegistrationCodeModel(
                id=new_id(),
                code=_random_code(code_type),
                code_type=code_type,
                tenant_id=tenant_id,
                created_by=created_by,
                used=False,
                is_active=True,
                expires_at=self.now() + timedelta(days=days),
            )
            self.db.add(model)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning("Registration code collision, retrying")
                continue
            self.db.refresh(model)
            logger.info(
                "Generated %s registration code %s for tenant %s",
                code_type,
                model.code,
                tenant_id,
            )
            return model

        raise ConflictError("Failed to generate a unique registration code")

    def _get_by_code(self, code: str) -> Optional[RegistrationCodeModel]:
        return (
            self.db.query(RegistrationCodeModel)
            .filter(RegistrationCodeModel.code == normalize_code(code))
            .first()
        )

    def validate(
        self, code: str, code_type: str, tenant_id: Optional[str] = None
    ) -> RegistrationCodeModel:
        """Check a code can be used for this registration.

        Args:
            code: The registration code string.
            code_type: Expected type, 'faculty' or 'student'.
            tenant_id: Tenant the registration targets. None skips the
                tenant check (public lookup before the tenant is known).

        Returns:
            The matching RegistrationCodeModel.

        Raises:
            RegistrationCodeNotFoundError: Unknown code.
            InvalidRegistrationCodeError: Used, revoked, expired, wrong type
                or wrong tenant.
        """
        model = self._get_by_code(code)
        if model is None:
            raise RegistrationCodeNotFoundError("Invalid registration code")
        if model.used:
            raise InvalidRegistrationCodeError("Registration code has already been used")
        if not model.is_active:
            raise InvalidRegistrationCodeError("Registration code has been deactivated")
        if self.now() >= as_utc(model.expires_at):
            raise InvalidRegistrationCodeError(
                "Registration code has expired", expired=True
            )
        if model.code_type != code_type:
            raise InvalidRegistrationCodeError(
                f"This code is not valid for {code_type} registration"
            )
        if tenant_id is not None and model.tenant_id != tenant_id:
            raise InvalidRegistrationCodeError(
                "Registration code does not belong to this university"
            )
        return model

    def consume(self, code: str, by_principal_id: str) -> None:
        """Mark a code used inside the caller's transaction.

        The update only matches a code that is still unused, active and
        unexpired, so a code revoked or consumed after ``validate`` is
        never taken.

        Args:
            code: The registration code string.
            by_principal_id: Id of the principal the code registered.

        Raises:
            CodeAlreadyUsedError: Another transaction consumed it first.
            InvalidRegistrationCodeError: The code was revoked or expired
                in the meantime.
        """
        normalized = normalize_code(code)
        now = self.now()
        changed = (
            self.db.query(RegistrationCodeModel)
            .filter(
                RegistrationCodeModel.code == normalized,
                RegistrationCodeModel.used.is_(False),
                RegistrationCodeModel.is_active.is_(True),
                RegistrationCodeModel.expires_at > now,
            )
            .update(
                {
                    RegistrationCodeModel.used: True,
                    RegistrationCodeModel.used_by: by_principal_id,
                    RegistrationCodeModel.used_at: now,
                },
                synchronize_session=False,
            )
        )
        if changed == 1:
            return

        current = (
            self.db.query(RegistrationCodeModel)
            .filter(RegistrationCodeModel.code == normalized)
            .populate_existing()
            .first()
        )
        if current is None or current.used:
            logger.warning("Registration code %s was already consumed", normalized)
            raise CodeAlreadyUsedError()
        if not current.is_active:
            logger.warning("Registration code %s was deactivated before use", normalized)
            raise InvalidRegistrationCodeError("Registration code has been deactivated")
        logger.warning("Registration code %s expired before use", normalized)
        raise InvalidRegistrationCodeError("Registration code has expired", expired=True)

    def get(self, code_id: str, tenant_id: str) -> RegistrationCodeModel:
        model = (
            self.db.query(RegistrationCodeModel)
            .filter(
                RegistrationCodeModel.id == code_id,
                RegistrationCodeModel.tenant_id == tenant_id,
            )
            .first()
        )
        if model is None:
            raise RegistrationCodeNotFoundError()
        return model

    def list_codes(
        self, tenant_id: str, code_type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List a tenant's codes, newest first.

        Args:
            tenant_id: Tenant to list for.
            code_type: Optional 'faculty' / 'student' filter.

        Returns:
            One dict per code, with the consuming principal summarised under
            ``used_by_principal`` when the code is used.
        """
        query = self.db.query(RegistrationCodeModel).filter(
            RegistrationCodeModel.tenant_id == tenant_id
        )
        if code_type:
            query = query.filter(RegistrationCodeModel.code_type == code_type)
        models = query.order_by(RegistrationCodeModel.created_at.desc()).all()

        now = self.now()
        items = []
        for model in models:
            items.append(
                {
                    "id": model.id,
                    "code": model.code,
                    "code_type": model.code_type,
                    "used": model.used,
                    "used_at": model.used_at,
                    "is_active": model.is_active,
                    "expired": now >= as_utc(model.expires_at),
                    "expires_at": model.expires_at,
                    "created_at": model.created_at,
                    "used_by_principal": self._summarise_principal(model),
                }
            )
        return items

    def _summarise_principal(self, model: RegistrationCodeModel) -> Optional[Dict[str, Any]]:
        if not model.used_by:
            return None
        principal_cls = FacultyModel if model.code_type == "faculty" else StudentModel
        pk = principal_cls.faculty_id if principal_cls is FacultyModel else principal_cls.student_id
        principal = self.db.query(principal_cls).filter(pk == model.used_by).first()
        if principal is None:
            return {"id": model.used_by}
        return {"id": principal.principal_id, "name": principal.name, "email": principal.email}

    def deactivate(self, code_id: str, tenant_id: str) -> RegistrationCodeModel:
        """Revoke an unused code. Already-inactive codes are left as they are."""
        model = self.get(code_id, tenant_id)
        if model.used:
            raise ConflictError("Cannot deactivate a code that has already been used")
        model.is_active = False
        self.db.commit()
        self.db.refresh(model)
        logger.info("Deactivated registration code %s", model.code)
        return model

    def delete(self, code_id: str, tenant_id: str) -> None:
        """Delete a code.

        Unused codes can be deleted at any time. Used codes are kept for
        USED_CODE_RETENTION_DAYS after use as an audit trail.

        Raises:
            RegistrationCodeNotFoundError: Unknown id or another tenant's code.
            ConflictError: The code was used too recently.
        """
        model = self.get(code_id, tenant_id)
        if model.used and model.used_at is not None:
            deletable_at = as_utc(model.used_at) + timedelta(days=USED_CODE_RETENTION_DAYS)
            if self.now() < deletable_at:
                raise ConflictError(
                    "Used codes can only be deleted after 3 months",
                    deletable_at=deletable_at.isoformat(),
                )
        code = model.code
        self.db.delete(model)
        self.db.commit()
        logger.info("Deleted registration code %s", code)

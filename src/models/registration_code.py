"""Registration code database model."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from .base import Base


class RegistrationCodeModel(Base):
    """One-time code scoping faculty/student self-registration to a tenant."""

    __tablename__ = "registration_codes"

    id = Column(String, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    code_type = Column(String, nullable=False)  # 'faculty' or 'student'
    tenant_id = Column(
        String, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_by = Column(String, nullable=False)  # admin id
    used = Column(Boolean, nullable=False, default=False)
    used_by = Column(String, nullable=True)  # principal id, set together with used
    used_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from .base import Base


class RegistrationLogModel(Base):
    __tablename__ = "registration_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(
        String, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), index=True, nullable=False
    )
    role = Column(String, index=True, nullable=False)  # 'faculty' or 'student'
    principal_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    employee_id = Column(String, nullable=True)
    register_number = Column(String, nullable=True)
    method = Column(String, nullable=False)  # 'admin-created', 'self-registration', 'otp-verification'
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

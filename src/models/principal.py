"""Principal database models.

Admins, faculty and students live in separate tables. Each carries a single
``state`` column instead of independent verification flags; the legacy
``status`` / ``is_verified`` / ``registration_completed`` views are derived
from it.
"""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class AdminState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class StudentState(str, Enum):
    PENDING = "pending"
    OTP_VERIFIED = "otp_verified"
    ACTIVE = "active"
    INACTIVE = "inactive"


class FacultyState(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    AWAITING_COMPLETION = "awaiting_completion"
    ACTIVE = "active"
    INACTIVE = "inactive"


class AdminModel(Base):
    """Tenant administrator. Email is globally unique."""

    __tablename__ = "admins"

    admin_id = Column(String, primary_key=True, index=True)
    tenant_id = Column(
        String, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    state = Column(String, nullable=False, default=AdminState.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    tenant = relationship("TenantModel", back_populates="admin")

    role = "admin"

    @property
    def principal_id(self) -> str:
        return self.admin_id

    @property
    def status(self) -> str:
        return self.state


class FacultyModel(Base):
    __tablename__ = "faculty"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_faculty_tenant_email"),
        UniqueConstraint("tenant_id", "employee_id", name="uq_faculty_tenant_employee_id"),
    )

    faculty_id = Column(String, primary_key=True, index=True)
    tenant_id = Column(
        String, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(String, nullable=False)
    email = Column(String, index=True, nullable=False)
    employee_id = Column(String, nullable=False)
    department = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    state = Column(String, nullable=False, default=FacultyState.PENDING_APPROVAL.value)

    phone = Column(String, nullable=True)
    qualification = Column(String, nullable=True)
    specialization = Column(String, nullable=True)
    experience = Column(String, nullable=True)
    address = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    role = "faculty"

    @property
    def principal_id(self) -> str:
        return self.faculty_id

    @property
    def status(self) -> str:
        if self.state == FacultyState.PENDING_APPROVAL.value:
            return "pending"
        if self.state == FacultyState.INACTIVE.value:
            return "inactive"
        return "active"

    @property
    def is_verified(self) -> bool:
        return self.state != FacultyState.PENDING_APPROVAL.value

    @property
    def registration_completed(self) -> bool:
        return self.state == FacultyState.ACTIVE.value


class StudentModel(Base):
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_students_tenant_email"),
        UniqueConstraint(
            "tenant_id", "register_number", name="uq_students_tenant_register_number"
        ),
    )

    student_id = Column(String, primary_key=True, index=True)
    tenant_id = Column(
        String, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(String, nullable=False)
    email = Column(String, index=True, nullable=False)
    register_number = Column(String, nullable=True)
    division = Column(String, nullable=True)
    class_year = Column(Integer, nullable=True)
    semester = Column(Integer, nullable=True)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)  # set by complete_registration
    state = Column(String, nullable=False, default=StudentState.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    role = "student"

    @property
    def principal_id(self) -> str:
        return self.student_id

    @property
    def status(self) -> str:
        if self.state in (StudentState.PENDING.value, StudentState.OTP_VERIFIED.value):
            return "pending"
        return self.state

    @property
    def is_verified(self) -> bool:
        return self.state in (StudentState.ACTIVE.value, StudentState.INACTIVE.value)

"""Tenant (university) database model."""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class TenantModel(Base):
    """A university namespace, owned by exactly one admin."""

    __tablename__ = "tenants"

    tenant_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    # Stored upper-case so the unique index is effectively case-insensitive
    university_code = Column(String, unique=True, index=True, nullable=False)
    status = Column(String, nullable=False, default="active")  # 'active' or 'inactive'
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    admin = relationship("AdminModel", back_populates="tenant", uselist=False)

"""Challenge database model.

One row per live OTP or completion token. The (subject_key, purpose) unique
constraint keeps at most one live challenge per pair.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, UniqueConstraint

from .base import Base


class ChallengeModel(Base):
    __tablename__ = "challenges"
    __table_args__ = (
        UniqueConstraint(
            "subject_key",
            "purpose",
            name="uq_challenges_subject_purpose",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    subject_key = Column(String, index=True, nullable=False)
    purpose = Column(String, nullable=False)
    code_digest = Column(String, index=True, nullable=False)  # sha256 hex, never the raw code
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    payload = Column(JSON, nullable=True)

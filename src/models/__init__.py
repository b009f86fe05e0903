"""ORM models. Importing this package registers every table on Base.metadata."""

from .base import Base
from .tenant import TenantModel
from .principal import AdminModel, FacultyModel, StudentModel
from .challenge import ChallengeModel
from .registration_code import RegistrationCodeModel
from .registration_log import RegistrationLogModel

__all__ = [
    "Base",
    "TenantModel",
    "AdminModel",
    "FacultyModel",
    "StudentModel",
    "ChallengeModel",
    "RegistrationCodeModel",
    "RegistrationLogModel",
]

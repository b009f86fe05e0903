"""Configuration module for the Campus Identity service.

This module provides centralized configuration management, including directory
paths, API server settings, token lifetimes, challenge TTLs and mail settings.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / DATA_DIR_NAME)))

# --- Database Configuration ---

DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/campus_identity.db"
)

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
# Default includes local development addresses. For production, set via
# CORS_ALLOWED_ORIGINS environment variable.
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,"
    "http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# --- Token Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")


def _minutes(env_name: str, default: int) -> int:
    return int(os.getenv(env_name, str(default)))


# Session lifetime per login path, in minutes.
# Admin and email-verified sessions last a day, password/OTP logins a week.
SESSION_TTL_POLICY: Dict[str, int] = {
    "admin_signup": _minutes("SESSION_TTL_ADMIN_SIGNUP_MINUTES", 60 * 24),
    "admin_login": _minutes("SESSION_TTL_ADMIN_LOGIN_MINUTES", 60 * 24),
    "student_registration": _minutes("SESSION_TTL_STUDENT_REGISTRATION_MINUTES", 60 * 24),
    "student_password_login": _minutes("SESSION_TTL_STUDENT_PASSWORD_LOGIN_MINUTES", 60 * 24 * 7),
    "student_otp_login": _minutes("SESSION_TTL_STUDENT_OTP_LOGIN_MINUTES", 60 * 24 * 7),
    "faculty_login": _minutes("SESSION_TTL_FACULTY_LOGIN_MINUTES", 60 * 24 * 7),
}

# --- Challenge Configuration ---

OTP_TTL_MINUTES: Dict[str, int] = {
    "email-verify": _minutes("OTP_TTL_EMAIL_VERIFY_MINUTES", 10),
    "login-otp": _minutes("OTP_TTL_LOGIN_MINUTES", 10),
    "password-reset": _minutes("OTP_TTL_PASSWORD_RESET_MINUTES", 10),
    "admin-signup": _minutes("OTP_TTL_ADMIN_SIGNUP_MINUTES", 5),
}

REGISTRATION_COMPLETION_TTL_HOURS: int = int(
    os.getenv("REGISTRATION_COMPLETION_TTL_HOURS", "72")
)

# --- Registration Code Configuration ---

REGISTRATION_CODE_TTL_DAYS: int = int(os.getenv("REGISTRATION_CODE_TTL_DAYS", "30"))

# Used codes may only be deleted once they are this old (three months)
USED_CODE_RETENTION_DAYS: int = int(os.getenv("USED_CODE_RETENTION_DAYS", "90"))

# --- Authentication Configuration ---

# Shared secret gating administrator signup
SUPER_ADMIN_CODE: Optional[str] = os.getenv("SUPER_ADMIN_CODE")
SUPER_ADMIN_CODE_REQUIRED: bool = (
    os.getenv("SUPER_ADMIN_CODE_REQUIRED", "false").lower() == "true"
)

# Bcrypt cost factor; values below 10 are raised to 10
BCRYPT_ROUNDS: int = max(10, int(os.getenv("BCRYPT_ROUNDS", "12")))

# --- Mail Configuration ---

RESEND_API_KEY: Optional[str] = os.getenv("RESEND_API_KEY")
MAIL_FROM: str = os.getenv("MAIL_FROM", "Campus Identity <onboarding@resend.dev>")
FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

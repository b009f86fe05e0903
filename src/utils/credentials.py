"""Credential policy.

Password complexity validation plus bcrypt hashing. Every violated rule is
reported at once so a client can render all failing criteria.
"""

import logging
import re
import secrets
import string
from typing import List, Optional

import bcrypt

from config import BCRYPT_ROUNDS
from core.exceptions import PolicyError

logger = logging.getLogger(__name__)

# Symbols accepted by the "symbol" rule
PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'
MIN_PASSWORD_LENGTH = 8

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72

_RULES = (
    ("min_length", lambda raw: len(raw) >= MIN_PASSWORD_LENGTH),
    ("uppercase", lambda raw: re.search(r"[A-Z]", raw) is not None),
    ("lowercase", lambda raw: re.search(r"[a-z]", raw) is not None),
    ("digit", lambda raw: re.search(r"[0-9]", raw) is not None),
    ("symbol", lambda raw: any(ch in PASSWORD_SYMBOLS for ch in raw)),
)

RULE_MESSAGES = {
    "min_length": f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
    "uppercase": "Password must contain at least one uppercase letter",
    "lowercase": "Password must contain at least one lowercase letter",
    "digit": "Password must contain at least one number",
    "symbol": "Password must contain at least one special character",
}


class CredentialPolicy:
    """Validates and hashes passwords."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        """Initialize CredentialPolicy.

        Args:
            rounds: Bcrypt cost factor. Values below 10 are raised to 10.
        """
        self.rounds = max(10, rounds)

    def validate_password(self, raw: Optional[str]) -> List[str]:
        """Check a password against every complexity rule.

        Args:
            raw: Candidate password.

        Returns:
            Names of the violated rules, in rule order. Empty when valid.
        """
        raw = raw or ""
        return [name for name, check in _RULES if not check(raw)]

    def ensure_valid(self, raw: Optional[str]) -> None:
        """Raise PolicyError listing all violated rules, if any."""
        violations = self.validate_password(raw)
        if violations:
            raise PolicyError(
                violations,
                message="; ".join(RULE_MESSAGES[name] for name in violations),
            )

    def hash_password(self, raw: str) -> str:
        """Hash a password using bcrypt.

        Args:
            raw: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_password_bytes(raw), salt).decode("utf-8")

    def verify_password(self, raw: str, hashed: Optional[str]) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            raw: Plain text password to verify.
            hashed: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        if not raw or not hashed:
            return False
        try:
            return bcrypt.checkpw(_password_bytes(raw), hashed.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False

    def generate_temporary_password(self, length: int = 12) -> str:
        """Generate a random password that satisfies every rule."""
        alphabet = string.ascii_letters + string.digits + PASSWORD_SYMBOLS
        required = [
            secrets.choice(string.ascii_uppercase),
            secrets.choice(string.ascii_lowercase),
            secrets.choice(string.digits),
            secrets.choice(PASSWORD_SYMBOLS),
        ]
        rest = [secrets.choice(alphabet) for _ in range(max(length, MIN_PASSWORD_LENGTH) - len(required))]
        chars = required + rest
        # Fisher-Yates with a CSPRNG so the required characters are not always first
        for i in range(len(chars) - 1, 0, -1):
            j = secrets.randbelow(i + 1)
            chars[i], chars[j] = chars[j], chars[i]
        return "".join(chars)


def _password_bytes(raw: str) -> bytes:
    data = raw.encode("utf-8")
    if len(data) > _BCRYPT_MAX_BYTES:
        data = data[:_BCRYPT_MAX_BYTES]
    return data

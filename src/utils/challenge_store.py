"""Challenge store.

Issues, stores and validates time-boxed OTPs and completion tokens. There is
at most one live challenge per (subject_key, purpose): issuing a new one
replaces the previous code in place.

``verify``, ``require_verified`` and ``find_by_code`` commit on their own,
and only when they discard an expired challenge. Everything else flushes and
leaves the commit to the caller, so consuming a challenge lands in the same
transaction as the state transition it gates.
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import (
    ChallengeExpiredError,
    ChallengeMismatchError,
    ChallengeNotFoundError,
    ConflictError,
    VerificationRequiredError,
)
from models.challenge import ChallengeModel
from utils.clock import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)

# Challenge purposes
EMAIL_VERIFY = "email-verify"
LOGIN_OTP = "login-otp"
PASSWORD_RESET = "password-reset"
REGISTRATION_COMPLETION = "registration-completion"
ADMIN_SIGNUP = "admin-signup"

OTP_PURPOSES = frozenset({EMAIL_VERIFY, LOGIN_OTP, PASSWORD_RESET, ADMIN_SIGNUP})
TOKEN_PURPOSES = frozenset({REGISTRATION_COMPLETION})

# 6-digit space, 100000-999999 inclusive
_OTP_LOW = 100000
_OTP_SPAN = 900000
# 32 bytes -> 256 bits of entropy
_TOKEN_BYTES = 32


def generate_otp() -> str:
    """Uniform draw over the full 6-digit space."""
    return str(_OTP_LOW + secrets.randbelow(_OTP_SPAN))


def generate_token() -> str:
    return secrets.token_hex(_TOKEN_BYTES)


def code_digest(code: str) -> str:
    return hashlib.sha256(code.strip().encode("utf-8")).hexdigest()


@dataclass
class IssuedChallenge:
    """A freshly issued challenge plus its raw code.

    The raw code exists only here; the store keeps its digest.
    """

    code: str
    challenge: ChallengeModel


class ChallengeStore:
    """Manages challenge persistence using SQLAlchemy."""

    def __init__(self, db: Session, now: Clock = utc_now):
        """Initialize ChallengeStore.

        Args:
            db: SQLAlchemy Session.
            now: Clock returning an aware UTC datetime.
        """
        self.db = db
        self.now = now

    def _get(self, subject_key: str, purpose: str) -> Optional[ChallengeModel]:
        return (
            self.db.query(ChallengeModel)
            .filter(
                ChallengeModel.subject_key == subject_key,
                ChallengeModel.purpose == purpose,
            )
            .first()
        )

    def get(self, subject_key: str, purpose: str) -> Optional[ChallengeModel]:
        return self._get(subject_key, purpose)

    def issue(
        self,
        subject_key: str,
        purpose: str,
        ttl: timedelta,
        payload: Optional[Dict[str, Any]] = None,
    ) -> IssuedChallenge:
        """Issue a challenge, superseding any prior one for the same pair.

        Args:
            subject_key: Principal id or pending-registration key.
            purpose: One of the challenge purposes.
            ttl: Lifetime of the challenge.
            payload: Optional data carried until verification.

        Returns:
            IssuedChallenge with the raw code.

        Raises:
            ValueError: If the purpose is unknown.
            ConflictError: If another process inserted the pair concurrently.
        """
        if purpose in OTP_PURPOSES:
            code = generate_otp()
        elif purpose in TOKEN_PURPOSES:
            code = generate_token()
        else:
            raise ValueError(f"Unknown challenge purpose: {purpose}")

        issued_at = self.now()
        fields = {
            "code_digest": code_digest(code),
            "issued_at": issued_at,
            "expires_at": issued_at + ttl,
            "verified": False,
            "payload": payload,
        }
        # The (subject_key, purpose) unique constraint serializes racing inserts
        model = self._get_for_update(subject_key, purpose)
        if model is None:
            model = self._insert(subject_key, purpose, fields)
        else:
            self._overwrite(model, fields)

        logger.info("Issued %s challenge for %s", purpose, subject_key)
        return IssuedChallenge(code=code, challenge=model)

    def _get_for_update(self, subject_key: str, purpose: str) -> Optional[ChallengeModel]:
        return (
            self.db.query(ChallengeModel)
            .filter(
                ChallengeModel.subject_key == subject_key,
                ChallengeModel.purpose == purpose,
            )
            .with_for_update()
            .first()
        )

    def _overwrite(self, model: ChallengeModel, fields: Dict[str, Any]) -> None:
        for name, value in fields.items():
            setattr(model, name, value)
        self.db.flush()

    def _insert(
        self, subject_key: str, purpose: str, fields: Dict[str, Any]
    ) -> ChallengeModel:
        model = ChallengeModel(subject_key=subject_key, purpose=purpose, **fields)
        try:
            # Savepoint so a lost insert race keeps the caller's pending work
            with self.db.begin_nested():
                self.db.add(model)
            return model
        except IntegrityError:
            logger.warning(
                "Concurrent %s challenge insert for %s, overwriting", purpose, subject_key
            )

        model = self._get_for_update(subject_key, purpose)
        if model is None:
            raise ConflictError(
                "A code was just issued for this request. Please try again."
            )
        self._overwrite(model, fields)
        return model

    def _discard_expired(self, model: ChallengeModel) -> None:
        purpose, subject_key = model.purpose, model.subject_key
        self.db.delete(model)
        self.db.commit()
        logger.info("Discarded expired %s challenge for %s", purpose, subject_key)

    def _is_expired(self, model: ChallengeModel) -> bool:
        return self.now() > as_utc(model.expires_at)

    def verify(self, subject_key: str, purpose: str, code: str) -> ChallengeModel:
        """Verify a supplied code.

        A mismatch leaves the challenge live for a retry. An expired challenge
        is deleted and committed before raising.

        Args:
            subject_key: Subject the challenge was issued to.
            purpose: Challenge purpose.
            code: Code supplied by the caller.

        Returns:
            The challenge, now marked verified (flushed, not committed).

        Raises:
            ChallengeNotFoundError: No challenge for this pair.
            ChallengeExpiredError: The challenge is past its expiry.
            ChallengeMismatchError: The code does not match.
        """
        model = self._get(subject_key, purpose)
        if model is None:
            raise ChallengeNotFoundError()
        if self._is_expired(model):
            self._discard_expired(model)
            raise ChallengeExpiredError()
        if not hmac.compare_digest(model.code_digest, code_digest(code or "")):
            logger.warning("Mismatched %s code for %s", purpose, subject_key)
            raise ChallengeMismatchError()

        model.verified = True
        self.db.flush()
        return model

    def require_verified(self, subject_key: str, purpose: str) -> ChallengeModel:
        """Return the verified challenge gating the next step.

        Raises:
            VerificationRequiredError: No verified challenge exists.
            ChallengeExpiredError: The verified challenge has since expired.
        """
        model = self._get(subject_key, purpose)
        if model is None or not model.verified:
            raise VerificationRequiredError(
                "OTP verification required before this step"
            )
        if self._is_expired(model):
            self._discard_expired(model)
            raise ChallengeExpiredError()
        return model

    def find_by_code(self, purpose: str, code: str) -> ChallengeModel:
        """Look a challenge up by its code (used for completion links).

        Raises:
            ChallengeNotFoundError: No challenge carries this code.
            ChallengeExpiredError: The challenge is past its expiry.
        """
        model = (
            self.db.query(ChallengeModel)
            .filter(
                ChallengeModel.purpose == purpose,
                ChallengeModel.code_digest == code_digest(code or ""),
            )
            .first()
        )
        if model is None:
            raise ChallengeNotFoundError("Invalid or expired registration link")
        if self._is_expired(model):
            self._discard_expired(model)
            raise ChallengeExpiredError("Registration link has expired")
        return model

    def consume(self, subject_key: str, purpose: str) -> None:
        """Delete the challenge inside the caller's transaction."""
        model = self._get(subject_key, purpose)
        if model is not None:
            self.db.delete(model)
            self.db.flush()

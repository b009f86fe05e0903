"""Shared plumbing for the admin, faculty and student managers.

Each manager composes the tenant directory, challenge store, credential
policy, registration log and session issuer over one SQLAlchemy session.
A multi-step operation runs inside ``transaction()`` and commits once.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import OTP_TTL_MINUTES
from core.exceptions import AlreadyRegisteredError, IdentityError, InternalError
from utils.challenge_store import ChallengeStore
from utils.clock import Clock, utc_now
from utils.credentials import CredentialPolicy
from utils.mailer import EmailMessage, Notify
from utils.registration_log import RegistrationLog
from utils.session_issuer import IssuedToken, SessionIssuer
from utils.tenant_directory import TenantDirectory

logger = logging.getLogger(__name__)


@dataclass
class RegistrationStarted:
    principal: Any
    resuming: bool = False


@dataclass
class AuthResult:
    principal: Any
    session: IssuedToken


def otp_ttl(purpose: str) -> timedelta:
    return timedelta(minutes=OTP_TTL_MINUTES[purpose])


def _drop_notification(message: EmailMessage) -> None:
    logger.debug("No notifier configured, dropping '%s' to %s", message.subject, message.to)


class LifecycleManager:
    """Base class for the per-role managers."""

    duplicate_message = "An account with these details already exists"

    def __init__(
        self,
        db: Session,
        now: Clock = utc_now,
        notify: Optional[Notify] = None,
        sessions: Optional[SessionIssuer] = None,
        policy: Optional[CredentialPolicy] = None,
    ):
        """Initialize the manager.

        Args:
            db: SQLAlchemy Session.
            now: Clock returning an aware UTC datetime.
            notify: Called with each outgoing EmailMessage after the state
                change it reports has been committed.
            sessions: Session issuer. Defaults to one sharing ``now``.
            policy: Credential policy.
        """
        self.db = db
        self.now = now
        self.notify = notify or _drop_notification
        self.sessions = sessions or SessionIssuer(now=now)
        self.policy = policy or CredentialPolicy()
        self.tenants = TenantDirectory(db)
        self.challenges = ChallengeStore(db, now=now)
        self.registration_log = RegistrationLog(db)

    @contextmanager
    def transaction(self, duplicate_message: Optional[str] = None) -> Iterator[None]:
        """Run a unit of work and commit it once.

        Any exception rolls the whole unit back. Unique-constraint violations
        become AlreadyRegisteredError and other storage failures become
        InternalError; business errors pass through unchanged.
        """
        try:
            yield
            self.db.commit()
        except IdentityError:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Unique constraint violated: %s", exc.orig)
            raise AlreadyRegisteredError(duplicate_message or self.duplicate_message) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Storage failure, unit rolled back")
            raise InternalError() from exc
        except Exception:
            self.db.rollback()
            raise

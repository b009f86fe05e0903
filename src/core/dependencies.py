"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes. Every
manager gets the request-scoped DB session, the clock and a ``notify``
callable that defers email delivery to a background task.
"""

from typing import Annotated

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import admin_manager
from utils import faculty_manager
from utils import mailer
from utils import registration_codes
from utils import registration_log
from utils import session_issuer
from utils import student_manager
from utils import tenant_directory
from utils.clock import Clock, utc_now

# Singleton mailer (holds the provider client)
_mailer_instance: mailer.Mailer = None


def get_clock() -> Clock:
    """Get the clock used for expiry checks.

    Returns:
        Callable returning the current UTC time.
    """
    return utc_now


def get_mailer() -> mailer.Mailer:
    """Get Mailer singleton instance.

    Returns:
        ResendMailer when RESEND_API_KEY is set, otherwise LoggingMailer.
    """
    global _mailer_instance
    if _mailer_instance is None:
        _mailer_instance = mailer.default_mailer()
    return _mailer_instance


def get_notify(
    background_tasks: BackgroundTasks,
    outbound: mailer.Mailer = Depends(get_mailer),
) -> mailer.Notify:
    """Get a notify callable that sends mail after the response.

    Args:
        background_tasks: Request background tasks.
        outbound: Mailer to deliver with.

    Returns:
        Callable scheduling best-effort delivery of an EmailMessage.
    """

    def notify(message: mailer.EmailMessage) -> None:
        background_tasks.add_task(mailer.deliver, outbound, message)

    return notify


def get_session_issuer(now: Clock = Depends(get_clock)) -> session_issuer.SessionIssuer:
    return session_issuer.SessionIssuer(now=now)


def get_tenant_directory(db: Session = Depends(get_db)) -> tenant_directory.TenantDirectory:
    return tenant_directory.TenantDirectory(db)


def get_registration_code_ledger(
    db: Session = Depends(get_db),
    now: Clock = Depends(get_clock),
) -> registration_codes.RegistrationCodeLedger:
    """Get RegistrationCodeLedger instance with request-scoped DB session."""
    return registration_codes.RegistrationCodeLedger(db, now=now)


def get_registration_log(db: Session = Depends(get_db)) -> registration_log.RegistrationLog:
    return registration_log.RegistrationLog(db)


def get_student_manager(
    db: Session = Depends(get_db),
    now: Clock = Depends(get_clock),
    notify: mailer.Notify = Depends(get_notify),
    sessions: session_issuer.SessionIssuer = Depends(get_session_issuer),
) -> student_manager.StudentManager:
    """Get StudentManager instance with request-scoped DB session.

    Args:
        db: Database session.
        now: Clock.
        notify: Deferred mail sender.
        sessions: Session issuer.

    Returns:
        StudentManager instance.
    """
    return student_manager.StudentManager(db, now=now, notify=notify, sessions=sessions)


def get_faculty_manager(
    db: Session = Depends(get_db),
    now: Clock = Depends(get_clock),
    notify: mailer.Notify = Depends(get_notify),
    sessions: session_issuer.SessionIssuer = Depends(get_session_issuer),
) -> faculty_manager.FacultyManager:
    """Get FacultyManager instance with request-scoped DB session."""
    return faculty_manager.FacultyManager(db, now=now, notify=notify, sessions=sessions)


def get_admin_manager(
    db: Session = Depends(get_db),
    now: Clock = Depends(get_clock),
    notify: mailer.Notify = Depends(get_notify),
    sessions: session_issuer.SessionIssuer = Depends(get_session_issuer),
) -> admin_manager.AdminManager:
    """Get AdminManager instance with request-scoped DB session."""
    return admin_manager.AdminManager(db, now=now, notify=notify, sessions=sessions)


# Type aliases for dependency injection
SessionIssuerDep = Annotated[
    session_issuer.SessionIssuer, Depends(get_session_issuer)
]
TenantDirectoryDep = Annotated[
    tenant_directory.TenantDirectory, Depends(get_tenant_directory)
]
RegistrationCodeLedgerDep = Annotated[
    registration_codes.RegistrationCodeLedger, Depends(get_registration_code_ledger)
]
RegistrationLogDep = Annotated[
    registration_log.RegistrationLog, Depends(get_registration_log)
]
StudentManagerDep = Annotated[
    student_manager.StudentManager, Depends(get_student_manager)
]
FacultyManagerDep = Annotated[
    faculty_manager.FacultyManager, Depends(get_faculty_manager)
]
AdminManagerDep = Annotated[
    admin_manager.AdminManager, Depends(get_admin_manager)
]

import os
import re
import tempfile
from datetime import datetime, timedelta

# Must be set before config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DATA_DIR"] = os.path.join(tempfile.gettempdir(), "campus-identity-tests")
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("SUPER_ADMIN_CODE_REQUIRED", None)

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from core.database import build_engine, get_db, init_db
from core.dependencies import get_clock, get_mailer
from models.principal import AdminModel
from utils.credentials import CredentialPolicy
from utils.ids import new_id
from utils.mailer import RecordingMailer
from utils.tenant_directory import TenantDirectory

STRONG_PASSWORD = "Str0ng!Pw"
OTP_PATTERN = re.compile(r"<strong>(\d{6})</strong>")
LINK_PATTERN = re.compile(r"/faculty/complete-registration/([0-9a-f]{64})")


class FakeClock:
    """Clock the tests move by hand."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


def otp_from(message) -> str:
    match = OTP_PATTERN.search(message.html)
    assert match, f"no OTP in '{message.subject}'"
    return match.group(1)


def completion_token_from(message) -> str:
    match = LINK_PATTERN.search(message.html)
    assert match, f"no completion link in '{message.subject}'"
    return match.group(1)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 3, 9, 0, tzinfo=pytz.utc))


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'campus_identity.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def outbox():
    return RecordingMailer()


@pytest.fixture
def policy():
    return CredentialPolicy(rounds=10)


@pytest.fixture
def make_manager(db, clock, outbox, policy):
    """Build a manager wired to the test session, clock and outbox."""

    def make(manager_cls, session=None, **kwargs):
        return manager_cls(
            session if session is not None else db,
            now=clock,
            notify=outbox.send,
            policy=policy,
            **kwargs,
        )

    return make


@pytest.fixture
def university(db):
    """An active tenant with code UNIV-001."""
    tenant = TenantDirectory(db).create_tenant("State University", university_code="UNIV-001")
    db.commit()
    return tenant


@pytest.fixture
def university_admin(db, university, policy):
    admin = AdminModel(
        admin_id=new_id(),
        tenant_id=university.tenant_id,
        name="Dana Admin",
        email="dana@state.edu",
        password_hash=policy.hash_password(STRONG_PASSWORD),
        state="active",
    )
    db.add(admin)
    db.commit()
    return admin


@pytest.fixture
def client(session_factory, clock, outbox):
    from app import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_mailer] = lambda: outbox
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

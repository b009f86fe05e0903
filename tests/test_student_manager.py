import pytest

from core.exceptions import (
    AlreadyRegisteredError,
    AuthError,
    ChallengeExpiredError,
    ChallengeMismatchError,
    ChallengeNotFoundError,
    ForbiddenError,
    PolicyError,
    PrincipalNotFoundError,
    TenantInactiveError,
    TenantNotFoundError,
    VerificationRequiredError,
)
from models.principal import StudentModel
from models.registration_log import RegistrationLogModel
from utils.student_manager import StudentManager
from utils.tenant_directory import TenantDirectory

from conftest import STRONG_PASSWORD, otp_from


@pytest.fixture
def manager(make_manager, university):
    return make_manager(StudentManager)


def begin(manager, email="a@x.edu", register_number="REG-001", code="UNIV-001"):
    return manager.begin_registration(
        code,
        name="Alex Kim",
        email=email,
        register_number=register_number,
        division="A",
        class_year=2,
        semester=3,
    )


def wrong(code):
    return "100000" if code != "100000" else "100001"


def register(manager, outbox, email="a@x.edu", register_number="REG-001"):
    student = begin(manager, email, register_number).principal
    manager.verify_email_otp(student.student_id, otp_from(outbox.last_to(email)))
    return manager.complete_registration(student.student_id, STRONG_PASSWORD)


def test_worked_registration_scenario(manager, outbox):
    started = begin(manager)
    student = started.principal
    assert not started.resuming
    assert student.state == "pending"
    otp = otp_from(outbox.last_to("a@x.edu"))

    with pytest.raises(ChallengeMismatchError):
        manager.verify_email_otp(student.student_id, wrong(otp))

    student = manager.verify_email_otp(student.student_id, otp)
    assert student.state == "otp_verified"

    with pytest.raises(PolicyError) as exc_info:
        manager.complete_registration(student.student_id, "Weak1")
    assert "symbol" in exc_info.value.violations

    result = manager.complete_registration(student.student_id, STRONG_PASSWORD)
    assert result.principal.state == "active"
    assert result.principal.status == "active"
    claims = manager.sessions.verify(result.session.token)
    assert claims.role == "student"
    assert claims.principal_id == student.student_id
    assert claims.login_path == "student_registration"
    assert outbox.last_to("a@x.edu").subject.startswith("Welcome")


def test_registration_is_logged(manager, outbox, db):
    result = register(manager, outbox)

    entry = db.query(RegistrationLogModel).one()
    assert entry.principal_id == result.principal.student_id
    assert entry.method == "otp-verification"
    assert entry.register_number == "REG-001"


def test_resume_updates_same_record(manager, outbox, db):
    first = begin(manager)
    first_otp = otp_from(outbox.last_to("a@x.edu"))
    second = begin(manager, email="A@X.edu")
    second_otp = otp_from(outbox.last_to("a@x.edu"))

    assert second.resuming
    assert second.principal.student_id == first.principal.student_id
    assert db.query(StudentModel).count() == 1
    if first_otp != second_otp:
        with pytest.raises(ChallengeMismatchError):
            manager.verify_email_otp(first.principal.student_id, first_otp)
    manager.verify_email_otp(first.principal.student_id, second_otp)


def test_resume_after_otp_verified_restarts_verification(manager, outbox):
    student = begin(manager).principal
    manager.verify_email_otp(student.student_id, otp_from(outbox.last_to("a@x.edu")))

    begin(manager)

    with pytest.raises(VerificationRequiredError):
        manager.complete_registration(student.student_id, STRONG_PASSWORD)


def test_registered_email_cannot_register_again(manager, outbox):
    register(manager, outbox)

    with pytest.raises(AlreadyRegisteredError):
        begin(manager, register_number="REG-002")


def test_register_number_is_unique_per_tenant(manager, db):
    begin(manager)

    with pytest.raises(AlreadyRegisteredError):
        begin(manager, email="b@x.edu")

    TenantDirectory(db).create_tenant("Other College", university_code="OTH-001")
    db.commit()
    assert not begin(manager, email="b@x.edu", code="OTH-001").resuming


def test_unknown_and_inactive_tenant(manager, university, db):
    with pytest.raises(TenantNotFoundError):
        begin(manager, code="NOPE-000")

    TenantDirectory(db).set_status(university.tenant_id, "inactive")
    with pytest.raises(TenantInactiveError):
        begin(manager)


def test_expired_email_otp(manager, outbox, clock):
    student = begin(manager).principal
    otp = otp_from(outbox.last_to("a@x.edu"))
    clock.advance(minutes=10, seconds=1)

    with pytest.raises(ChallengeExpiredError):
        manager.verify_email_otp(student.student_id, otp)

    manager.resend_verification(student.student_id)
    manager.verify_email_otp(student.student_id, otp_from(outbox.last_to("a@x.edu")))


def test_complete_before_verification(manager):
    student = begin(manager).principal

    with pytest.raises(VerificationRequiredError) as exc_info:
        manager.complete_registration(student.student_id, STRONG_PASSWORD)
    assert exc_info.value.to_dict()["student_id"] == student.student_id


def test_password_login(manager, outbox):
    register(manager, outbox)

    result = manager.login("A@x.edu", STRONG_PASSWORD, "univ-001")
    assert result.session.login_path == "student_password_login"
    assert result.principal.last_login_at is not None

    with pytest.raises(AuthError):
        manager.login("a@x.edu", "Wr0ng!Password", "UNIV-001")
    with pytest.raises(AuthError):
        manager.login("nobody@x.edu", STRONG_PASSWORD, "UNIV-001")


def test_login_before_registration_is_complete(manager):
    student = begin(manager).principal

    with pytest.raises(VerificationRequiredError) as exc_info:
        manager.login("a@x.edu", STRONG_PASSWORD, "UNIV-001")
    assert exc_info.value.to_dict()["student_id"] == student.student_id


def test_inactive_student_cannot_log_in(manager, outbox, db):
    student = register(manager, outbox).principal
    student.state = "inactive"
    db.commit()

    with pytest.raises(ForbiddenError):
        manager.login("a@x.edu", STRONG_PASSWORD, "UNIV-001")


def test_login_with_otp(manager, outbox):
    register(manager, outbox)

    manager.request_login_otp("REG-001", "UNIV-001")
    otp = otp_from(outbox.last_to("a@x.edu"))
    result = manager.login_with_otp("REG-001", "UNIV-001", otp)

    assert result.session.login_path == "student_otp_login"
    with pytest.raises(ChallengeNotFoundError):
        manager.login_with_otp("REG-001", "UNIV-001", otp)


def test_login_otp_unknown_register_number(manager):
    with pytest.raises(PrincipalNotFoundError):
        manager.request_login_otp("REG-404", "UNIV-001")


def test_password_reset(manager, outbox):
    student = register(manager, outbox).principal

    manager.request_password_reset("a@x.edu", "UNIV-001")
    otp = otp_from(outbox.last_to("a@x.edu"))

    with pytest.raises(VerificationRequiredError):
        manager.reset_password(student.student_id, "N3w!Password")

    manager.verify_reset_otp(student.student_id, otp)
    with pytest.raises(PolicyError):
        manager.reset_password(student.student_id, "short")
    manager.reset_password(student.student_id, "N3w!Password")

    manager.login("a@x.edu", "N3w!Password", "UNIV-001")
    with pytest.raises(AuthError):
        manager.login("a@x.edu", STRONG_PASSWORD, "UNIV-001")
    with pytest.raises(VerificationRequiredError):
        manager.reset_password(student.student_id, "An0ther!Password")


def test_password_reset_expires_after_verification(manager, outbox, clock):
    student = register(manager, outbox).principal
    manager.request_password_reset("a@x.edu", "UNIV-001")
    manager.verify_reset_otp(student.student_id, otp_from(outbox.last_to("a@x.edu")))

    clock.advance(minutes=11)
    with pytest.raises(ChallengeExpiredError):
        manager.reset_password(student.student_id, "N3w!Password")


def test_password_reset_requires_active_student(manager):
    begin(manager)

    with pytest.raises(PrincipalNotFoundError):
        manager.request_password_reset("a@x.edu", "UNIV-001")


def test_losing_the_race_creates_no_student(
    manager, make_manager, session_factory, outbox, monkeypatch
):
    original_find = manager._find_by_email

    def find_then_lose_race(tenant_id, email):
        found = original_find(tenant_id, email)
        rival = session_factory()
        try:
            begin(make_manager(StudentManager, session=rival), email, "REG-999")
        finally:
            rival.close()
        return found

    monkeypatch.setattr(manager, "_find_by_email", find_then_lose_race)

    with pytest.raises(AlreadyRegisteredError):
        begin(manager)

    check = session_factory()
    try:
        students = check.query(StudentModel).all()
        assert [s.register_number for s in students] == ["REG-999"]
    finally:
        check.close()
    assert len(outbox.sent) == 1

import pytest

from core.exceptions import (
    CodeAlreadyUsedError,
    ConflictError,
    InvalidRegistrationCodeError,
    RegistrationCodeNotFoundError,
    ValidationError,
)
from models.principal import FacultyModel
from models.registration_code import RegistrationCodeModel
from utils.faculty_manager import FacultyManager
from utils.registration_codes import RegistrationCodeLedger
from utils.tenant_directory import TenantDirectory

from conftest import STRONG_PASSWORD


@pytest.fixture
def ledger(db, clock):
    return RegistrationCodeLedger(db, now=clock)


@pytest.fixture
def faculty_code(ledger, university, university_admin):
    return ledger.generate("faculty", university.tenant_id, university_admin.admin_id)


def test_generate_uses_type_prefix(ledger, university, university_admin, clock):
    faculty = ledger.generate("faculty", university.tenant_id, university_admin.admin_id)
    student = ledger.generate("student", university.tenant_id, university_admin.admin_id, 7)

    assert faculty.code.startswith("FAC-") and len(faculty.code) == 12
    assert student.code.startswith("STU-")
    assert not faculty.used and faculty.is_active
    assert ledger.list_codes(university.tenant_id, "student")[0]["code"] == student.code


@pytest.mark.parametrize(
    "code_type, days",
    [("visitor", None), ("faculty", 0), ("faculty", -3)],
)
def test_generate_rejects_bad_input(ledger, university, university_admin, code_type, days):
    with pytest.raises(ValidationError):
        ledger.generate(code_type, university.tenant_id, university_admin.admin_id, days)


def test_validate_is_case_insensitive(ledger, faculty_code, university):
    model = ledger.validate(faculty_code.code.lower(), "faculty", university.tenant_id)
    assert model.id == faculty_code.id


def test_validate_failures(ledger, faculty_code, university, db):
    with pytest.raises(RegistrationCodeNotFoundError):
        ledger.validate("FAC-NOPE0000", "faculty")

    with pytest.raises(InvalidRegistrationCodeError):
        ledger.validate(faculty_code.code, "student")

    other = TenantDirectory(db).create_tenant("Other College", university_code="OTH-001")
    db.commit()
    with pytest.raises(InvalidRegistrationCodeError):
        ledger.validate(faculty_code.code, "faculty", other.tenant_id)


def test_validate_expiry_boundary(ledger, university, university_admin, clock):
    model = ledger.generate("faculty", university.tenant_id, university_admin.admin_id, 1)

    clock.advance(days=1, seconds=-1)
    ledger.validate(model.code, "faculty")

    clock.advance(seconds=2)
    with pytest.raises(InvalidRegistrationCodeError) as exc_info:
        ledger.validate(model.code, "faculty")
    assert exc_info.value.to_dict()["expired"] is True


def test_deactivated_code_cannot_be_used(ledger, faculty_code, university):
    ledger.deactivate(faculty_code.id, university.tenant_id)

    with pytest.raises(InvalidRegistrationCodeError):
        ledger.validate(faculty_code.code, "faculty")


def test_consume_succeeds_once(ledger, faculty_code, db):
    ledger.consume(faculty_code.code, "faculty-a")
    db.commit()

    with pytest.raises(CodeAlreadyUsedError):
        ledger.consume(faculty_code.code, "faculty-b")

    db.refresh(faculty_code)
    assert faculty_code.used
    assert faculty_code.used_by == "faculty-a"


def test_losing_the_race_creates_no_faculty(
    make_manager, faculty_code, university, session_factory, clock, monkeypatch
):
    manager = make_manager(FacultyManager)
    original_validate = manager.codes.validate

    def validate_then_lose_race(*args, **kwargs):
        model = original_validate(*args, **kwargs)
        rival = session_factory()
        try:
            RegistrationCodeLedger(rival, now=clock).consume(faculty_code.code, "rival-faculty")
            rival.commit()
        finally:
            rival.close()
        return model

    monkeypatch.setattr(manager.codes, "validate", validate_then_lose_race)

    with pytest.raises(CodeAlreadyUsedError):
        manager.self_register(
            faculty_code.code,
            "univ-001",
            name="Robin Reyes",
            email="robin@state.edu",
            employee_id="EMP-7",
            department="Physics",
            password=STRONG_PASSWORD,
        )

    check = session_factory()
    try:
        assert check.query(FacultyModel).count() == 0
        code = check.query(RegistrationCodeModel).filter_by(id=faculty_code.id).one()
        assert code.used_by == "rival-faculty"
    finally:
        check.close()


def test_code_revoked_after_validation_is_not_consumed(
    make_manager, faculty_code, university, session_factory, clock, monkeypatch
):
    manager = make_manager(FacultyManager)
    original_validate = manager.codes.validate

    def validate_then_admin_revokes(*args, **kwargs):
        model = original_validate(*args, **kwargs)
        admin_session = session_factory()
        try:
            RegistrationCodeLedger(admin_session, now=clock).deactivate(
                faculty_code.id, university.tenant_id
            )
        finally:
            admin_session.close()
        return model

    monkeypatch.setattr(manager.codes, "validate", validate_then_admin_revokes)

    with pytest.raises(InvalidRegistrationCodeError):
        manager.self_register(
            faculty_code.code,
            "univ-001",
            name="Robin Reyes",
            email="robin@state.edu",
            employee_id="EMP-7",
            department="Physics",
            password=STRONG_PASSWORD,
        )

    check = session_factory()
    try:
        assert check.query(FacultyModel).count() == 0
        code = check.query(RegistrationCodeModel).filter_by(id=faculty_code.id).one()
        assert not code.is_active
        assert not code.used
    finally:
        check.close()


def test_code_expiring_before_consumption_is_not_consumed(
    ledger, university, university_admin, clock, db
):
    model = ledger.generate("faculty", university.tenant_id, university_admin.admin_id, 1)
    ledger.validate(model.code, "faculty", university.tenant_id)

    clock.advance(days=1)
    with pytest.raises(InvalidRegistrationCodeError) as exc_info:
        ledger.consume(model.code, "faculty-a")
    assert exc_info.value.to_dict()["expired"] is True

    db.rollback()
    db.refresh(model)
    assert not model.used


def test_used_code_cannot_be_deactivated(ledger, faculty_code, university, db):
    ledger.consume(faculty_code.code, "faculty-a")
    db.commit()

    with pytest.raises(ConflictError):
        ledger.deactivate(faculty_code.id, university.tenant_id)


def test_unused_code_can_be_deleted_any_time(ledger, faculty_code, university):
    ledger.delete(faculty_code.id, university.tenant_id)

    with pytest.raises(RegistrationCodeNotFoundError):
        ledger.get(faculty_code.id, university.tenant_id)


def test_used_code_is_kept_for_three_months(ledger, faculty_code, university, db, clock):
    ledger.consume(faculty_code.code, "faculty-a")
    db.commit()

    clock.advance(days=89)
    with pytest.raises(ConflictError) as exc_info:
        ledger.delete(faculty_code.id, university.tenant_id)
    assert "deletable_at" in exc_info.value.to_dict()

    clock.advance(days=1)
    ledger.delete(faculty_code.id, university.tenant_id)


def test_codes_are_scoped_to_their_tenant(ledger, faculty_code, db):
    other = TenantDirectory(db).create_tenant("Other College", university_code="OTH-001")
    db.commit()

    with pytest.raises(RegistrationCodeNotFoundError):
        ledger.delete(faculty_code.id, other.tenant_id)
    assert ledger.list_codes(other.tenant_id) == []


def test_student_code_is_checkable_but_opens_no_faculty_registration(
    ledger, make_manager, university, university_admin, db
):
    student_code = ledger.generate("student", university.tenant_id, university_admin.admin_id)
    assert ledger.validate(student_code.code, "student", university.tenant_id).id == student_code.id

    with pytest.raises(InvalidRegistrationCodeError):
        make_manager(FacultyManager).self_register(
            student_code.code,
            "univ-001",
            name="Robin Reyes",
            email="robin@state.edu",
            employee_id="EMP-7",
            department="Physics",
            password=STRONG_PASSWORD,
        )

    db.refresh(student_code)
    assert not student_code.used
    assert db.query(FacultyModel).count() == 0

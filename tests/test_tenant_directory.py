import re

import pytest

from core.exceptions import (
    ConflictError,
    TenantInactiveError,
    TenantNotFoundError,
    ValidationError,
)
from utils.tenant_directory import TenantDirectory, derive_university_code


@pytest.fixture
def directory(db):
    return TenantDirectory(db)


def test_derived_code_shape():
    assert re.fullmatch(r"STA-[0-9A-F]{6}", derive_university_code("State University"))
    assert re.fullmatch(r"MXX-[0-9A-F]{6}", derive_university_code("M."))


def test_resolve_is_case_insensitive(directory, university):
    assert directory.resolve_tenant("univ-001").tenant_id == university.tenant_id
    assert directory.resolve_tenant("  UNIV-001 ").tenant_id == university.tenant_id


def test_resolve_unknown_code(directory, university):
    with pytest.raises(TenantNotFoundError):
        directory.resolve_tenant("NOPE-000")


def test_resolve_blank_code(directory):
    with pytest.raises(ValidationError):
        directory.resolve_tenant("  ")


def test_inactive_tenant_does_not_resolve(directory, university):
    directory.set_status(university.tenant_id, "inactive")

    with pytest.raises(TenantInactiveError):
        directory.resolve_tenant("UNIV-001")
    assert directory.find_by_code("UNIV-001").status == "inactive"


def test_set_status_rejects_unknown_status(directory, university):
    with pytest.raises(ValidationError):
        directory.set_status(university.tenant_id, "archived")


def test_create_tenant_derives_unique_codes(directory, db):
    first = directory.create_tenant("Riverside College")
    second = directory.create_tenant("Riverside College")
    db.commit()

    assert first.university_code.startswith("RIV-")
    assert first.university_code != second.university_code
    assert [t.name for t in directory.list_tenants()] == ["Riverside College"] * 2


def test_fixed_code_collision(directory, university):
    with pytest.raises(ConflictError):
        directory.create_tenant("Copycat University", university_code="univ-001")


def test_blank_name_is_rejected(directory):
    with pytest.raises(ValidationError):
        directory.create_tenant("   ")


def test_public_info(directory, university):
    assert directory.public_info("univ-001") == {
        "name": "State University",
        "university_code": "UNIV-001",
    }

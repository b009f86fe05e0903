import pytest

from main import run
from utils.tenant_directory import TenantDirectory


def test_list_universities(db, university, capsys):
    assert run(["list-universities"], db) == 0

    out = capsys.readouterr().out
    assert "UNIV-001" in out
    assert "State University" in out
    assert "active" in out


def test_list_universities_when_empty(db, capsys):
    assert run(["list-universities"], db) == 0
    assert "No universities registered." in capsys.readouterr().out


def test_set_university_status(db, university, capsys):
    assert run(["set-university-status", "univ-001", "inactive"], db) == 0

    assert "UNIV-001 is now inactive" in capsys.readouterr().out
    assert TenantDirectory(db).find_by_code("UNIV-001").status == "inactive"


def test_unknown_university_code(db, capsys):
    assert run(["set-university-status", "NOPE-000", "active"], db) == 1
    assert "Invalid university code" in capsys.readouterr().err


def test_status_must_be_known(db):
    with pytest.raises(SystemExit):
        run(["set-university-status", "UNIV-001", "archived"], db)

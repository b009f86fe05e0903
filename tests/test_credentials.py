import pytest

from core.exceptions import PolicyError
from utils.credentials import CredentialPolicy

ALL_RULES = ["min_length", "uppercase", "lowercase", "digit", "symbol"]


@pytest.fixture
def credential_policy():
    return CredentialPolicy(rounds=10)


def test_reports_every_violated_rule(credential_policy):
    assert credential_policy.validate_password("") == ALL_RULES
    assert credential_policy.validate_password(None) == ALL_RULES


def test_abc_violates_all_but_lowercase(credential_policy):
    assert credential_policy.validate_password("abc") == [
        "min_length",
        "uppercase",
        "digit",
        "symbol",
    ]


def test_weak_password_is_missing_symbol_and_length(credential_policy):
    violations = credential_policy.validate_password("Weak1")
    assert "symbol" in violations
    assert "min_length" in violations
    assert "uppercase" not in violations


def test_strong_password_passes(credential_policy):
    assert credential_policy.validate_password("Str0ng!Pw") == []
    credential_policy.ensure_valid("Str0ng!Pw")


def test_ensure_valid_raises_with_all_violations(credential_policy):
    with pytest.raises(PolicyError) as exc_info:
        credential_policy.ensure_valid("password")

    assert exc_info.value.violations == ["uppercase", "digit", "symbol"]
    body = exc_info.value.to_dict()
    assert body["code"] == "password_policy"
    assert body["violations"] == ["uppercase", "digit", "symbol"]


def test_hash_and_verify(credential_policy):
    hashed = credential_policy.hash_password("Str0ng!Pw")

    assert hashed != "Str0ng!Pw"
    assert credential_policy.verify_password("Str0ng!Pw", hashed)
    assert not credential_policy.verify_password("Str0ng!Px", hashed)
    assert not credential_policy.verify_password("Str0ng!Pw", None)
    assert not credential_policy.verify_password("Str0ng!Pw", "not-a-hash")


def test_rounds_have_a_floor():
    assert CredentialPolicy(rounds=4).rounds == 10


def test_temporary_passwords_satisfy_policy(credential_policy):
    for _ in range(20):
        assert credential_policy.validate_password(
            credential_policy.generate_temporary_password()
        ) == []

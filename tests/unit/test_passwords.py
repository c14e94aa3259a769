"""Tests for password policy and Argon2id hashing."""

import pytest

from backend.gateway.auth.exceptions import PasswordPolicyError
from backend.gateway.auth.passwords import (
    hash_password,
    needs_rehash,
    validate_password,
    verify_password,
)
from tests.helpers import STRONG_PASSWORD


@pytest.mark.unit
class TestValidatePassword:

    def test_strong_password_is_valid(self):
        result = validate_password(STRONG_PASSWORD, min_length=12)

        assert result.is_valid is True
        assert result.errors == []
        assert result.strength == "strong"

    def test_strength_grows_with_length(self):
        assert validate_password("Abcdefgh12!x", min_length=12).strength == "medium"
        assert validate_password("Abcdefgh12!xyzuvwqrs", min_length=12).strength == "very-strong"

    @pytest.mark.parametrize(
        ("password", "message"),
        [
            ("Sh0rt!", "at least 12 characters"),
            ("alllowercase12!", "uppercase"),
            ("ALLUPPERCASE12!", "lowercase"),
            ("NoDigitsHere!!", "number"),
            ("NoSpecials1234", "special character"),
            ("Aaaaaaaa1234!", "repeated characters"),
        ],
    )
    def test_policy_violations(self, password, message):
        result = validate_password(password, min_length=12)

        assert result.is_valid is False
        assert any(message in error for error in result.errors)

    def test_common_password_rejected(self):
        result = validate_password("password123", min_length=8)
        assert any("too common" in error for error in result.errors)

    def test_too_long(self):
        result = validate_password("Aa1!" * 40, min_length=12)
        assert any("128" in error for error in result.errors)

    def test_reports_every_violation(self):
        result = validate_password("abc", min_length=12)
        assert len(result.errors) >= 4


@pytest.mark.unit
class TestHashing:

    def test_hash_and_verify(self):
        hashed = hash_password(STRONG_PASSWORD)

        assert hashed.startswith("$argon2id$")
        assert verify_password(STRONG_PASSWORD, hashed) is True
        assert verify_password("Wrong-Horse-42!", hashed) is False
        assert needs_rehash(hashed) is False

    def test_weak_password_not_hashed(self):
        with pytest.raises(PasswordPolicyError) as excinfo:
            hash_password("weak")

        assert excinfo.value.errors

    def test_malformed_hash_does_not_verify(self):
        assert verify_password(STRONG_PASSWORD, "not-a-hash") is False
        assert needs_rehash("not-a-hash") is True

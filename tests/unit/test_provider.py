"""Tests for the in-memory authentication provider."""

import asyncio
from datetime import timedelta

import pytest
from argon2 import PasswordHasher

from backend.gateway.auth.exceptions import (
    InvalidCredentialsError,
    PasswordPolicyError,
    UserAlreadyExistsError,
)
from backend.gateway.auth.passwords import needs_rehash, verify_password
from backend.gateway.auth.provider import InMemoryAuthProvider, OAuthProfile
from backend.gateway.auth.types import Role
from tests.helpers import STRONG_PASSWORD


def get_session(provider, headers):
    return asyncio.run(provider.get_session(headers))


@pytest.mark.unit
class TestAccounts:

    def test_create_and_authenticate(self, provider):
        record = provider.create_user("Someone@Example.com", STRONG_PASSWORD, role=Role.GP)

        assert record.email == "someone@example.com"
        assert record.password_hash != STRONG_PASSWORD
        assert provider.authenticate("someone@example.com", STRONG_PASSWORD).id == record.id

    def test_duplicate_email_rejected(self, provider, patient_user):
        with pytest.raises(UserAlreadyExistsError):
            provider.create_user("PATIENT@example.com", STRONG_PASSWORD)

    def test_weak_password_rejected(self, provider):
        with pytest.raises(PasswordPolicyError):
            provider.create_user("weak@example.com", "password")

    def test_wrong_password_and_unknown_email_look_the_same(self, provider, patient_user):
        with pytest.raises(InvalidCredentialsError) as wrong:
            provider.authenticate("patient@example.com", "Wrong-Horse-42!")
        with pytest.raises(InvalidCredentialsError) as unknown:
            provider.authenticate("nobody@example.com", STRONG_PASSWORD)

        assert str(wrong.value) == str(unknown.value)

    def test_role_lookup(self, provider, patient_user):
        assert asyncio.run(provider.get_role(patient_user.id)) is Role.PATIENT
        assert asyncio.run(provider.get_role("missing")) is None

    def test_outdated_hash_upgraded_on_sign_in(self, provider, patient_user):
        patient_user.password_hash = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1).hash(STRONG_PASSWORD)

        provider.authenticate("patient@example.com", STRONG_PASSWORD)

        assert needs_rehash(patient_user.password_hash) is False
        assert verify_password(STRONG_PASSWORD, patient_user.password_hash)

    def test_current_hash_left_alone(self, provider, patient_user):
        original_hash = patient_user.password_hash

        provider.authenticate("patient@example.com", STRONG_PASSWORD)

        assert patient_user.password_hash == original_hash


@pytest.mark.unit
class TestSessions:

    def test_bearer_and_cookie_tokens(self, provider, patient_user):
        token = provider.create_session(patient_user)

        by_bearer = get_session(provider, {"authorization": f"Bearer {token}"})
        by_cookie = get_session(provider, {"cookie": f"{provider.cookie_name}={token}; theme=dark"})

        assert by_bearer.user.id == patient_user.id
        assert by_cookie.user.email == "patient@example.com"

    def test_missing_or_unknown_token(self, provider):
        assert get_session(provider, {}) is None
        assert get_session(provider, {"authorization": "Bearer nope"}) is None
        assert get_session(provider, {"cookie": "other=1"}) is None

    def test_malformed_neighbour_cookies_do_not_hide_session(self, provider, patient_user):
        token = provider.create_session(patient_user)

        for cookie in (
            f"pref=dark mode; {provider.cookie_name}={token}",
            f"broken=\"unbalanced; {provider.cookie_name}={token}",
            f"{provider.cookie_name}={token}; tracking=a b c",
        ):
            session = get_session(provider, {"cookie": cookie})
            assert session is not None, cookie
            assert session.user.id == patient_user.id

    def test_session_expires(self, provider, patient_user, clock):
        token = provider.create_session(patient_user)
        headers = {"authorization": f"Bearer {token}"}

        clock.advance(seconds=provider.session_ttl.total_seconds() - 1)
        assert get_session(provider, headers) is not None

        clock.advance(seconds=1)
        assert get_session(provider, headers) is None

    def test_revoked_session(self, provider, patient_user):
        token = provider.create_session(patient_user)
        provider.revoke_session(token)

        assert get_session(provider, {"authorization": f"Bearer {token}"}) is None

    def test_custom_ttl(self, clock):
        provider = InMemoryAuthProvider(clock=clock, session_ttl=timedelta(minutes=5))
        assert provider.session_ttl == timedelta(minutes=5)


@pytest.mark.unit
class TestOAuthProfile:

    def test_defaults_to_verified(self):
        profile = OAuthProfile(email="oauth@example.com")
        assert profile.email_verified is True

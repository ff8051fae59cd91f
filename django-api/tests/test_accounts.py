"""Tests for credentials: JWT pairs, token encryption and account sign-up.

Run with: pytest tests/test_accounts.py -v
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from freezegun import freeze_time

from accounts.domain import OrganizerSignup, Principal, PrincipalKind
from accounts.domain.errors import (
    DocumentTakenError,
    EmailTakenError,
    InvalidCredentialsError,
    TokenExpiredError,
    TokenInvalidError,
)
from accounts.services.crypto import TokenCipher
from accounts.services.token_service import TokenService
from conftest import group_request, profile

KEY = "ab" * 32


def token_service(**overrides) -> TokenService:
    values = {
        "access_secret": "access-secret",
        "refresh_secret": "refresh-secret",
        "access_ttl": timedelta(minutes=15),
        "refresh_ttl": timedelta(days=7),
    }
    values.update(overrides)
    return TokenService(**values)


class TestTokenService:
    def test_access_token_round_trip(self):
        principal = Principal(id=uuid4(), kind=PrincipalKind.PARTICIPANT, email="ana@example.com")
        tokens = token_service()

        pair = tokens.issue(principal)

        assert tokens.verify_access(pair.access_token) == principal
        assert tokens.verify_refresh(pair.refresh_token) == principal

    def test_tokens_are_not_interchangeable(self):
        tokens = token_service()
        pair = tokens.issue(Principal(id=uuid4(), kind=PrincipalKind.USER, email="org@example.com"))

        with pytest.raises(TokenInvalidError):
            tokens.verify_access(pair.refresh_token)
        with pytest.raises(TokenInvalidError):
            tokens.verify_refresh(pair.access_token)

    def test_same_secret_still_checks_the_type(self):
        tokens = token_service(refresh_secret="access-secret")
        pair = tokens.issue(Principal(id=uuid4(), kind=PrincipalKind.USER, email="org@example.com"))

        with pytest.raises(TokenInvalidError):
            tokens.verify_access(pair.refresh_token)

    def test_expired_access_token(self):
        tokens = token_service()
        with freeze_time("2026-01-01 12:00:00"):
            pair = tokens.issue(Principal(id=uuid4(), kind=PrincipalKind.USER, email="org@example.com"))

        with freeze_time("2026-01-01 12:16:00"):
            with pytest.raises(TokenExpiredError):
                tokens.verify_access(pair.access_token)

    def test_forged_token(self):
        forged = token_service(access_secret="someone-else").issue(
            Principal(id=uuid4(), kind=PrincipalKind.USER, email="org@example.com")
        )

        with pytest.raises(TokenInvalidError):
            token_service().verify_access(forged.access_token)

    def test_garbage(self):
        with pytest.raises(TokenInvalidError):
            token_service().verify_access("not.a.jwt")


class TestTokenCipher:
    def test_round_trip(self):
        cipher = TokenCipher(KEY)

        sealed = cipher.encrypt("APP_USR-123")

        assert sealed.count(":") == 2
        assert "APP_USR" not in sealed
        assert cipher.decrypt(sealed) == "APP_USR-123"

    def test_fresh_iv_each_time(self):
        cipher = TokenCipher(KEY)
        assert cipher.encrypt("same") != cipher.encrypt("same")

    def test_tampered_ciphertext(self):
        cipher = TokenCipher(KEY)
        iv, tag, ciphertext = cipher.encrypt("APP_USR-123").split(":")
        flipped = f"{int(ciphertext[0], 16) ^ 1:x}{ciphertext[1:]}"

        with pytest.raises(ValueError):
            cipher.decrypt(f"{iv}:{tag}:{flipped}")

    def test_wrong_key(self):
        sealed = TokenCipher(KEY).encrypt("APP_USR-123")
        with pytest.raises(ValueError):
            TokenCipher("cd" * 32).decrypt(sealed)

    def test_malformed(self):
        with pytest.raises(ValueError):
            TokenCipher(KEY).decrypt("no-separators")

    def test_key_length_enforced(self):
        with pytest.raises(ValueError):
            TokenCipher("ab" * 16)


def signup(**overrides) -> OrganizerSignup:
    values = {
        "email": "nova@example.com",
        "password": "Segura123",
        "full_name": "Nova Organizadora",
        "cpf_cnpj": "11222333000181",
        "phone": "11999998888",
    }
    values.update(overrides)
    return OrganizerSignup(**values)


@pytest.mark.django_db
class TestAccountService:
    def test_organizer_login(self, container):
        container.accounts.register_organizer(signup())

        organizer, pair = container.accounts.login_organizer("nova@example.com", "Segura123")

        assert organizer.email == "nova@example.com"
        assert organizer.payment.connected is False
        assert TokenService.from_settings().verify_access(pair.access_token).is_organizer

    def test_wrong_password(self, container):
        container.accounts.register_organizer(signup())

        with pytest.raises(InvalidCredentialsError):
            container.accounts.login_organizer("nova@example.com", "Errada123")

    def test_duplicate_email_and_document(self, container):
        container.accounts.register_organizer(signup())

        with pytest.raises(EmailTakenError):
            container.accounts.register_organizer(signup(cpf_cnpj="11222333000262"))
        with pytest.raises(DocumentTakenError):
            container.accounts.register_organizer(signup(email="outra@example.com"))

    def test_participant_from_checkout_claims_account(self, container, event, modality):
        container.registrations.create_group(group_request(event, modality))

        participant, _ = container.accounts.register_participant(profile(0), "Segura123")
        logged_in, _ = container.accounts.login_participant(profile(0).email, "Segura123")

        assert logged_in.id == participant.id
        with pytest.raises(DocumentTakenError):
            container.accounts.register_participant(profile(0), "Outra1234")

    def test_refresh_issues_a_new_pair(self, container):
        _, pair = container.accounts.register_participant(profile(1), "Segura123")

        refreshed = container.accounts.refresh(pair.refresh_token)

        principal = TokenService.from_settings().verify_access(refreshed.access_token)
        assert principal.is_participant
        assert principal.email == profile(1).email

    def test_refresh_for_deleted_account(self, container):
        pair = TokenService.from_settings().issue(
            Principal(id=uuid4(), kind=PrincipalKind.PARTICIPANT, email="ghost@example.com")
        )

        with pytest.raises(TokenInvalidError):
            container.accounts.refresh(pair.refresh_token)

"""
Unit tests for access token issuing and validation.

Tests cover:
- Registered and application claims
- Lifetime
- Expired, foreign-audience and tampered tokens
- Building the current user from claims
"""

import time

import pytest
from jose import jwt

from api.src.config import JwtIssuerOptions
from api.src.models.auth import CurrentUser
from api.src.services.token_service import TokenService

SECRET = "unit-test-secret-key-with-at-least-32-characters"


@pytest.fixture
def options() -> JwtIssuerOptions:
    return JwtIssuerOptions(secret_key=SECRET)


@pytest.fixture
def token_service(options) -> TokenService:
    return TokenService(options)


class TestCreateAccessToken:

    def test_token_carries_registered_and_application_claims(self, token_service):
        token = token_service.create_access_token("0722222222", {"IdNgo": 1, "IdObserver": 7})

        payload = jwt.get_unverified_claims(token)

        assert payload["sub"] == "0722222222"
        assert payload["iss"] == "VoteMonitor"
        assert payload["aud"] == "VoteMonitorClients"
        assert payload["IdNgo"] == 1
        assert payload["IdObserver"] == 7
        assert payload["jti"]
        assert payload["exp"] - payload["iat"] == 86400

    def test_each_token_has_unique_id(self, token_service):
        first = jwt.get_unverified_claims(token_service.create_access_token("user"))
        second = jwt.get_unverified_claims(token_service.create_access_token("user"))

        assert first["jti"] != second["jti"]


class TestDecodeToken:

    def test_decode_separates_application_claims(self, token_service):
        token = token_service.create_access_token("admin", {"IdNgo": 2, "Organizer": "false"})

        claims = token_service.decode_token(token)

        assert claims.sub == "admin"
        assert claims.extra == {"IdNgo": 2, "Organizer": "false"}

    def test_expired_token_is_rejected(self, token_service, options):
        now = int(time.time())
        token = jwt.encode(
            {"sub": "user", "iat": now - 100, "exp": now - 10, "iss": options.issuer, "aud": options.audience},
            SECRET,
            algorithm="HS256"
        )

        assert token_service.decode_token(token) is None

    def test_foreign_audience_is_rejected(self, token_service, options):
        other = TokenService(options.model_copy(update={"audience": "SomeoneElse"}))

        assert token_service.decode_token(other.create_access_token("user")) is None

    def test_foreign_issuer_is_rejected(self, token_service, options):
        other = TokenService(options.model_copy(update={"issuer": "SomeoneElse"}))

        assert token_service.decode_token(other.create_access_token("user")) is None

    def test_garbage_is_rejected(self, token_service):
        assert token_service.decode_token("not-a-token") is None


class TestCurrentUser:

    def test_observer_claims(self, token_service):
        token = token_service.create_access_token("0722222222", {"IdNgo": 1, "IdObserver": 7})

        user = CurrentUser.from_claims(token_service.decode_token(token))

        assert user.subject == "0722222222"
        assert user.is_observer
        assert user.has_ngo
        assert user.id_observer == 7
        assert not user.organizer

    def test_organizer_admin_claims(self, token_service):
        token = token_service.create_access_token("admin", {"IdNgo": 1, "Organizer": "true"})

        user = CurrentUser.from_claims(token_service.decode_token(token))

        assert user.organizer
        assert not user.is_observer

    def test_token_without_ngo(self, token_service):
        user = CurrentUser.from_claims(token_service.decode_token(token_service.create_access_token("x")))

        assert not user.has_ngo

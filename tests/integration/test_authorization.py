"""
Functional tests for the access endpoints.

Run the full application (middleware, validation, database, token issuing)
against a seeded SQLite database through FastAPI's TestClient.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from api.src.main import create_app
from api.src.services.hash_service import Sha256HashService
from api.src.services.token_service import TokenService
from api.src.config import HashOptions

from tests.conftest import (
    ADMIN_ACCOUNT,
    ADMIN_AUTHORIZE_URL,
    ADMIN_PASSWORD,
    AUTHORIZE_URL,
    INACTIVE_OBSERVER_PHONE,
    INACTIVE_OBSERVER_PIN,
    OBSERVER_PHONE,
    OBSERVER_PIN,
    TOKEN_TEST_URL,
    default_entities,
    make_settings,
    seed_database,
)

LOGIN_ERROR_PREFIX = "A aparut o eroare la logarea in aplicatie"

pytestmark = pytest.mark.integration


class TestObserverAuthorize:
    """Tests for POST /api/v1/access/authorize."""

    def test_invalid_credentials_return_bad_request_with_login_error(self, client):
        response = client.post(AUTHORIZE_URL, json={
            "user": "some user",
            "password": "some password",
            "uniqueId": "some unique id"
        })

        assert response.status_code == 400
        assert response.json()["error"].startswith(LOGIN_ERROR_PREFIX)

    def test_empty_body_returns_required_field_errors(self, client):
        response = client.post(AUTHORIZE_URL, json={})

        assert response.status_code == 400
        errors = response.json()
        assert "required" in errors["user"][0]
        assert "required" in errors["password"][0]

    def test_valid_credentials_return_access_token(self, client):
        response = client.post(AUTHORIZE_URL, json={
            "user": OBSERVER_PHONE,
            "password": OBSERVER_PIN,
            "uniqueId": "some unique id"
        })

        assert response.status_code == 200
        body = response.json()
        assert body["access_token"]
        assert body["expires_in"] == 86400

        claims = jwt.get_unverified_claims(body["access_token"])
        assert claims["sub"] == OBSERVER_PHONE
        assert claims["IdObserver"] == 1
        assert claims["IdNgo"] == 1
        assert claims["exp"] - claims["iat"] == 86400

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_null_or_blank_fields_are_reported_as_required(self, client, value):
        response = client.post(AUTHORIZE_URL, json={"user": value, "password": value})

        assert response.status_code == 400
        assert response.json() == {
            "user": ["The user field is required."],
            "password": ["The password field is required."],
        }

    def test_missing_body_is_reported_on_request(self, client):
        response = client.post(AUTHORIZE_URL)

        assert response.status_code == 400
        assert "request" in response.json()

    def test_wrong_pin_is_rejected(self, client):
        response = client.post(AUTHORIZE_URL, json={
            "user": OBSERVER_PHONE,
            "password": "0000"
        })

        assert response.status_code == 400
        assert response.json()["error"].startswith(LOGIN_ERROR_PREFIX)

    def test_observer_of_inactive_ngo_is_rejected(self, client):
        response = client.post(AUTHORIZE_URL, json={
            "user": INACTIVE_OBSERVER_PHONE,
            "password": INACTIVE_OBSERVER_PIN
        })

        assert response.status_code == 400


class TestNgoAdminAuthorize:
    """Tests for POST /api/v1/access/admin."""

    def test_valid_credentials_return_token_with_ngo_claims(self, client):
        response = client.post(ADMIN_AUTHORIZE_URL, json={
            "user": ADMIN_ACCOUNT,
            "password": ADMIN_PASSWORD
        })

        assert response.status_code == 200
        claims = jwt.get_unverified_claims(response.json()["access_token"])
        assert claims["sub"] == ADMIN_ACCOUNT
        assert claims["IdNgo"] == 1
        assert claims["Organizer"] == "true"
        assert "IdObserver" not in claims

    @pytest.mark.parametrize("value", [None, ""])
    def test_null_or_empty_fields_are_reported_as_required(self, client, value):
        response = client.post(ADMIN_AUTHORIZE_URL, json={"user": value, "password": value})

        assert response.status_code == 400
        assert response.json() == {
            "user": ["The user field is required."],
            "password": ["The password field is required."],
        }

    def test_invalid_password_returns_login_error(self, client):
        response = client.post(ADMIN_AUTHORIZE_URL, json={
            "user": ADMIN_ACCOUNT,
            "password": "wrong"
        })

        assert response.status_code == 400
        assert response.json()["error"].startswith(LOGIN_ERROR_PREFIX)


class TestAuthorizationPolicy:
    """Tests for the global bearer token + NGO claim policy."""

    def test_protected_route_requires_token(self, client):
        response = client.get(TOKEN_TEST_URL)

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_protected_route_accepts_observer_token(self, client, observer_token):
        response = client.get(TOKEN_TEST_URL, headers={"Authorization": f"Bearer {observer_token}"})

        assert response.status_code == 200
        body = response.json()
        assert body["user"] == OBSERVER_PHONE
        assert body["claims"]["IdNgo"] == 1

    def test_token_without_ngo_claim_is_forbidden(self, client, seeded_settings):
        token = TokenService(seeded_settings.jwt).create_access_token("someone")

        response = client.get(TOKEN_TEST_URL, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403

    def test_token_signed_with_another_key_is_rejected(self, client, seeded_settings):
        options = seeded_settings.jwt.model_copy(update={"secret_key": "x" * 40})
        token = TokenService(options).create_access_token("someone", {"IdNgo": 1})

        response = client.get(TOKEN_TEST_URL, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_malformed_authorization_header_is_rejected(self, client, observer_token):
        response = client.get(TOKEN_TEST_URL, headers={"Authorization": observer_token})

        assert response.status_code == 401

    def test_unknown_routes_are_protected(self, client):
        response = client.get("/api/v1/polling-station")

        assert response.status_code == 401


class TestDeviceLock:
    """Observer device binding with mobile_security.lock_device enabled."""

    @pytest.fixture
    def locked_client(self, tmp_path):
        settings = make_settings(tmp_path, mobile_security={"lock_device": True})
        asyncio.run(seed_database(settings, default_entities()))
        with TestClient(create_app(settings)) as test_client:
            yield test_client

    def _login(self, client, unique_id):
        payload = {"user": OBSERVER_PHONE, "password": OBSERVER_PIN}
        if unique_id is not None:
            payload["uniqueId"] = unique_id
        return client.post(AUTHORIZE_URL, json=payload)

    def test_first_device_is_registered_and_others_rejected(self, locked_client):
        assert self._login(locked_client, "device-a").status_code == 200
        assert self._login(locked_client, "device-a").status_code == 200
        assert self._login(locked_client, "device-b").status_code == 400

    def test_login_without_device_id_is_rejected(self, locked_client):
        assert self._login(locked_client, None).status_code == 400


class TestHashedCredentials:
    """Login against credentials stored with the SHA-256 hash service."""

    def test_observer_with_hashed_pin_can_login(self, tmp_path):
        hash_options = {"service_type": "Hash", "salt": "pepper"}
        settings = make_settings(tmp_path, hash_options=hash_options)
        hasher = Sha256HashService(HashOptions(**hash_options))
        asyncio.run(seed_database(
            settings,
            default_entities(pin=hasher.get_hash(OBSERVER_PIN), password=hasher.get_hash(ADMIN_PASSWORD))
        ))

        with TestClient(create_app(settings)) as client:
            observer = client.post(AUTHORIZE_URL, json={"user": OBSERVER_PHONE, "password": OBSERVER_PIN})
            admin = client.post(ADMIN_AUTHORIZE_URL, json={"user": ADMIN_ACCOUNT, "password": ADMIN_PASSWORD})

        assert observer.status_code == 200
        assert admin.status_code == 200

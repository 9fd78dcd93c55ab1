from __future__ import annotations

import logging
import uuid

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from credential_service.api import routes
from credential_service.config import Settings
from credential_service.domain.account import Language
from credential_service.domain.errors import AuthError, StoreFailure
from credential_service.domain.service import AuthService
from credential_service.repository import InMemoryAccountRepository
from credential_service.security.passwords import verify_password
from credential_service.security.tokens import decode_access_token, issue_access_token

TEST_SECRET = "api-test-secret-for-hs256-signing-0123456"


class FailingRepository(InMemoryAccountRepository):
    """In-memory store whose backend is permanently unavailable."""

    def create_account(self, email, password_hash, language, referrer_code):
        raise StoreFailure("database unavailable")

    def get_account_by_email(self, email):
        raise StoreFailure("database unavailable")


def _build_client(repository) -> TestClient:
    app = FastAPI()
    app.include_router(routes.router)
    app.add_exception_handler(AuthError, routes.auth_error_handler)
    app.state.auth_service = AuthService(
        repository,
        Settings(jwt_secret=TEST_SECRET, jwt_ttl_seconds=3600, bcrypt_rounds=4),
    )
    return TestClient(app)


@pytest.fixture
def api_client():
    """Provide a FastAPI test client with isolated state."""
    repository = InMemoryAccountRepository()
    with _build_client(repository) as client:
        yield client, repository


def test_register_returns_id_referral_code_and_token(api_client):
    client, repository = api_client

    response = client.post(
        "/v1/register",
        json={"email": "a@x.com", "password": "pw123", "language": "EN", "referrer_code": 5},
    )

    assert response.status_code == 201
    body = response.json()
    assert set(body) == {"id", "referral_code", "token"}
    uuid.UUID(body["id"])
    assert body["referral_code"] == body["id"][:8]

    claims = decode_access_token(body["token"], TEST_SECRET)
    assert claims["sub"] == body["id"]
    assert claims["email"] == "a@x.com"

    stored = repository.get_account_by_email("a@x.com")
    assert stored.referrer_code == 5
    assert verify_password("pw123", stored.password_hash)


def test_register_duplicate_email_conflicts(api_client):
    client, _ = api_client
    first = client.post("/v1/register", json={"email": "a@x.com", "password": "pw123"})
    second = client.post(
        "/v1/register",
        json={"email": "a@x.com", "password": "other", "language": "FA", "referrer_code": 0},
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["code"] == "already_exists"


@pytest.mark.parametrize(
    ("language", "expected"),
    [
        ("FA", Language.FA),
        (1, Language.FA),
        ("EN", Language.EN),
        ("klingon", Language.EN),
        (None, Language.EN),
        (True, Language.EN),
        (False, Language.EN),
        (["FA"], Language.EN),
    ],
)
def test_register_language_defaults_to_english(api_client, language, expected):
    client, repository = api_client
    response = client.post(
        "/v1/register",
        json={"email": "lang@x.com", "password": "pw", "language": language},
    )

    assert response.status_code == 201
    assert repository.get_account_by_email("lang@x.com").language is expected


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "", "password": "pw"},
        {"email": "a@x.com", "password": ""},
        {"email": "a@x.com"},
        {},
    ],
)
def test_register_requires_email_and_password(api_client, payload):
    client, repository = api_client
    response = client.post("/v1/register", json=payload)

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_argument"
    assert repository.get_account_by_email("a@x.com") is None


def test_register_rejects_referrer_code_outside_int32(api_client):
    client, _ = api_client
    response = client.post(
        "/v1/register",
        json={"email": "a@x.com", "password": "pw", "referrer_code": 2**31},
    )
    assert response.status_code == 422


def test_login_returns_token(api_client):
    client, _ = api_client
    registered = client.post("/v1/register", json={"email": "a@x.com", "password": "pw123"}).json()

    response = client.post("/v1/login", json={"email": "a@x.com", "password": "pw123"})

    assert response.status_code == 200
    assert set(response.json()) == {"token"}
    claims = decode_access_token(response.json()["token"], TEST_SECRET)
    assert claims["sub"] == registered["id"]


def test_login_failures_share_one_response(api_client):
    client, _ = api_client
    client.post("/v1/register", json={"email": "a@x.com", "password": "pw123"})

    wrong_password = client.post("/v1/login", json={"email": "a@x.com", "password": "wrong"})
    unknown_email = client.post("/v1/login", json={"email": "nobody@x.com", "password": "x"})

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["code"] == "invalid_credentials"


def test_login_requires_email_and_password(api_client):
    client, _ = api_client
    response = client.post("/v1/login", json={"email": "a@x.com", "password": ""})
    assert response.status_code == 400


def test_store_failures_surface_as_internal_errors():
    with _build_client(FailingRepository()) as client:
        register = client.post("/v1/register", json={"email": "a@x.com", "password": "pw"})
        login = client.post("/v1/login", json={"email": "a@x.com", "password": "pw"})

    for response in (register, login):
        assert response.status_code == 500
        assert response.json() == {"detail": "internal error", "code": "internal"}


def test_application_wiring_serves_health_and_auth_routes():
    from credential_service.main import app

    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}
        email = f"wired-{uuid.uuid4().hex[:8]}@x.com"
        registered = client.post("/v1/register", json={"email": email, "password": "pw123"})
        login = client.post("/v1/login", json={"email": email, "password": "pw123"})

    assert registered.status_code == 201
    assert login.status_code == 200
    assert login.json()["token"]


def test_whoami_returns_identity_for_valid_token(api_client):
    client, _ = api_client
    registered = client.post("/v1/register", json={"email": "a@x.com", "password": "pw123"}).json()

    response = client.get("/v1/whoami", headers={"Authorization": f"Bearer {registered['token']}"})

    assert response.status_code == 200
    assert response.json() == {"id": registered["id"], "email": "a@x.com"}


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Basic YTpi"},
        {"Authorization": "Bearer not-a-jwt"},
        {
            "Authorization": "Bearer "
            + issue_access_token(subject="acct", email="a@x.com", secret="some-other-signing-key-0123456789abcdef", ttl_seconds=60)[0]
        },
        {
            "Authorization": "Bearer "
            + issue_access_token(subject="acct", email="a@x.com", secret=TEST_SECRET, ttl_seconds=-30)[0]
        },
    ],
    ids=["missing", "wrong-scheme", "malformed", "wrong-key", "expired"],
)
def test_whoami_rejects_missing_or_invalid_tokens(api_client, headers):
    client, _ = api_client
    response = client.get("/v1/whoami", headers=headers)

    assert response.status_code == 401
    assert response.json()["detail"] == "unauthenticated"
    assert response.headers["www-authenticate"] == "Bearer"


def test_metrics_endpoint_exposes_prometheus_text():
    from credential_service.main import app

    with TestClient(app) as client:
        response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


def test_requests_are_logged_without_passwords(caplog):
    from credential_service.main import app

    email = f"logged-{uuid.uuid4().hex[:8]}@x.com"
    with caplog.at_level(logging.INFO):
        with TestClient(app) as client:
            client.post("/v1/register", json={"email": email, "password": "correct-horse-battery"})
            rejected = client.post("/v1/login", json={"email": email, "password": "wrong-staple-guess"})

    assert rejected.status_code == 401
    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("POST /v1/register -> 201") for message in messages)
    assert any(message.startswith("POST /v1/login -> 401") for message in messages)
    assert any(
        record.levelno == logging.WARNING and record.getMessage() == "login rejected: invalid credentials"
        for record in caplog.records
    )
    for message in messages:
        assert "correct-horse-battery" not in message
        assert "wrong-staple-guess" not in message

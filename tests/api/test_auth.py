from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from app.services import token_service
from tests.conftest import mint_token

TEST_EMAIL = "tee@example.com"
TEST_PASSWORD = "s3cure-pass"


def _register(
    client: TestClient,
    email: str = TEST_EMAIL,
    password: str = TEST_PASSWORD,
    name: str = "Tee",
):
    return client.post(
        "/auth/register",
        json={"name": name, "email": email, "password": password},
    )


# ---- register ----


def test_register_returns_token_and_user(client: TestClient) -> None:
    resp = _register(client, email="  Tee@Example.COM ")

    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == TEST_EMAIL
    assert body["user"]["name"] == "Tee"
    claims = token_service.decode_access_token(body["accessToken"])
    assert claims["sub"] == body["user"]["id"]
    UUID(claims["sub"])


def test_register_rejects_duplicate_email(client: TestClient) -> None:
    assert _register(client).status_code == 201
    resp = _register(client, email=TEST_EMAIL.upper())
    assert resp.status_code == 409


@pytest.mark.parametrize(
    ("email", "password", "name"),
    [
        ("not-an-email", TEST_PASSWORD, "Tee"),
        (TEST_EMAIL, "short", "Tee"),
        (TEST_EMAIL, TEST_PASSWORD, "   "),
    ],
)
def test_register_rejects_invalid_input(
    client: TestClient, email: str, password: str, name: str
) -> None:
    resp = _register(client, email=email, password=password, name=name)
    assert resp.status_code == 400


def test_register_rejects_missing_fields(client: TestClient) -> None:
    resp = client.post("/auth/register", json={"email": TEST_EMAIL})
    assert resp.status_code == 400


# ---- login ----


def test_login_returns_token_for_registered_user(client: TestClient) -> None:
    user_id = _register(client).json()["user"]["id"]

    resp = client.post(
        "/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD}
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["id"] == user_id
    assert token_service.decode_access_token(body["accessToken"])["sub"] == user_id


def test_login_rejects_wrong_password(client: TestClient) -> None:
    _register(client)
    resp = client.post("/auth/login", json={"email": TEST_EMAIL, "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"


def test_login_rejects_unknown_email(client: TestClient) -> None:
    resp = client.post(
        "/auth/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD}
    )
    assert resp.status_code == 401


def test_registered_token_can_create_org(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]
    resp = client.post(
        "/organizations",
        json={"name": "Tee Org"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 201


# ---- invalid / missing token cases ----


def test_protected_endpoint_rejects_garbage_token(client: TestClient) -> None:
    resp = client.get(
        "/organizations/my-orgs", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_protected_endpoint_rejects_expired_token(client: TestClient) -> None:
    expired = token_service.create_access_token(
        sub="test-user", ttl=timedelta(seconds=-30)
    )
    resp = client.get(
        "/organizations/my-orgs", headers={"Authorization": f"Bearer {expired}"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_protected_endpoint_rejects_tampered_signature(client: TestClient) -> None:
    token = mint_token()
    head, payload, sig = token.split(".")
    tampered = f"{head}.{payload}.{sig[:-4]}AAAA"
    resp = client.get(
        "/organizations/my-orgs", headers={"Authorization": f"Bearer {tampered}"}
    )
    assert resp.status_code == 401


def test_expired_token_logs_warning(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    expired = token_service.create_access_token(
        sub="test-user", ttl=timedelta(seconds=-30)
    )
    with caplog.at_level(logging.WARNING, logger="app.api.dependencies"):
        client.get(
            "/organizations/my-orgs", headers={"Authorization": f"Bearer {expired}"}
        )
    assert "Expired token rejected" in caplog.text


def test_failed_login_logs_warning(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING, logger="app.api.auth"):
        client.post(
            "/auth/login", json={"email": "ghost@example.com", "password": "x"}
        )
    assert "Login failed" in caplog.text

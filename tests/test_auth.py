from __future__ import annotations

from datetime import timedelta

import jwt
from fastapi.testclient import TestClient

from cento_dashboard.core.config import Settings
from cento_dashboard.core.security import create_access_token, verify_password


def test_token_success(client: TestClient, settings: Settings) -> None:
    resp = client.post(
        "/api/v1/auth/token",
        data={"username": "admin", "password": "password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store"
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == settings.access_token_expire_minutes * 60
    assert isinstance(body["access_token"], str) and body["access_token"]


def test_token_wrong_password(client: TestClient) -> None:
    resp = client.post(
        "/api/v1/auth/token",
        data={"username": "admin", "password": "wrong"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 401


def test_me_returns_token_scopes(client: TestClient, auth_headers: dict[str, str]) -> None:
    resp = client.get("/api/v1/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["username"] == "admin"
    assert "traffic:read" in body["scopes"]


def test_invalid_token_rejected(client: TestClient) -> None:
    resp = client.get("/api/v1/traffic/points", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_missing_scope_is_forbidden(client: TestClient, settings: Settings) -> None:
    token = create_access_token(subject="admin", scopes=["traffic:read"], settings=settings)
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get("/api/v1/traffic/points", headers=headers).status_code == 200
    assert client.post("/api/v1/traffic/refresh", headers=headers).status_code == 403
    assert client.get("/api/v1/weather/latest", headers=headers).status_code == 403


def test_expired_token_rejected(client: TestClient, settings: Settings) -> None:
    token = create_access_token(
        subject="admin",
        scopes=["traffic:read"],
        settings=settings,
        expires_delta=timedelta(minutes=-1),
    )
    resp = client.get("/api/v1/traffic/sensors", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_foreign_issuer_rejected(client: TestClient, settings: Settings) -> None:
    token = jwt.encode(
        {"iss": "someone-else", "sub": "admin", "scopes": ["traffic:read"], "exp": 2**31},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    resp = client.get("/api/v1/traffic/sensors", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_verify_password_with_malformed_hash() -> None:
    assert verify_password("password", "not-a-bcrypt-hash") is False

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from cento_dashboard.api import deps
from cento_dashboard.core.config import Settings
from cento_dashboard.core.security import get_password_hash
from cento_dashboard.factory import create_app
from tests.fakes import FakeSensornetClient


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        secret_key="test_secret_key_must_be_32_chars_minimum",
        admin_username="admin",
        admin_password_hash=get_password_hash("password"),
        cors_origins=["http://localhost"],
        trusted_hosts=["testserver", "localhost"],
        sensornet_url="http://sensornet.test",
        sensornet_user_agent="test-agent",
        sensornet_timeout_seconds=1.0,
        traffic_max_workers=2,
        refresh_min_interval_seconds=0,
        background_refresh_enabled=False,
        fetch_on_login=False,
    )


@pytest.fixture()
def fake_sensornet() -> FakeSensornetClient:
    return FakeSensornetClient()


@pytest.fixture()
def client(settings: Settings, fake_sensornet: FakeSensornetClient) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[deps.get_sensornet_client] = lambda: fake_sensornet
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def token(client: TestClient) -> str:
    resp = client.post(
        "/api/v1/auth/token",
        data={"username": "admin", "password": "password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


@pytest.fixture()
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def now() -> datetime:
    return datetime(2024, 11, 20, 9, 0, tzinfo=timezone.utc)

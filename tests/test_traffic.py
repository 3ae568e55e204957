from __future__ import annotations

from fastapi.testclient import TestClient

from tests.fakes import BROKEN_SENSOR_ID


def test_traffic_requires_token(client: TestClient) -> None:
    resp = client.get("/api/v1/traffic/sensors")
    assert resp.status_code == 401


def test_traffic_refresh_and_sensors(client: TestClient, auth_headers: dict[str, str]) -> None:
    refresh = client.post("/api/v1/traffic/refresh", headers=auth_headers)
    assert refresh.status_code == 200, refresh.text
    body = refresh.json()
    assert body["requested"] == 8
    assert body["resolved"] == 7
    assert body["no_data"] == 1
    assert body["skipped"] is False

    sensors = client.get("/api/v1/traffic/sensors", headers=auth_headers)
    assert sensors.status_code == 200, sensors.text
    rows = {r["sensor_id"]: r for r in sensors.json()}
    assert len(rows) == 8

    ok = rows[12488]
    assert ok["status"] == "ok"
    assert ok["total_count"] > 0
    assert len(ok["counts"]) == 97
    assert len(ok["speeds"]) == 97
    assert ok["speed_stats"] == {"min": 40.0, "max": 46.0, "avg": ok["speed_stats"]["avg"]}
    assert 40.0 <= ok["speed_stats"]["avg"] <= 46.0

    timestamps = [s["timestamp"] for s in ok["counts"]]
    assert timestamps == sorted(set(timestamps))


def test_broken_sensor_degrades_to_no_data(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    resp = client.get(f"/api/v1/traffic/sensors/{BROKEN_SENSOR_ID}", headers=auth_headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "no-data"
    assert body["total_count"] == 0
    assert body["speed_stats"] is None
    assert body["counts"] == []
    assert body["speeds"] == []


def test_unknown_sensor_is_404(client: TestClient, auth_headers: dict[str, str]) -> None:
    resp = client.get("/api/v1/traffic/sensors/99999", headers=auth_headers)
    assert resp.status_code == 404

    invalid = client.get("/api/v1/traffic/sensors/0", headers=auth_headers)
    assert invalid.status_code == 422


def test_traffic_points(client: TestClient, auth_headers: dict[str, str]) -> None:
    resp = client.get("/api/v1/traffic/points", headers=auth_headers)
    assert resp.status_code == 200, resp.text
    points = {p["location"]: p for p in resp.json()}
    assert set(points) == {"Via del Curato", "Via Ferrarese", "Via Giovannina", "Ponte Vecchio"}

    curato = points["Via del Curato"]
    by_flow = {s["flow"]: s for s in curato["sensors"]}
    assert by_flow["inbound"]["status"] == "ok"
    assert by_flow["outbound"]["status"] == "no-data"
    assert curato["total_in"] > 0
    assert curato["total_out"] == 0
    assert curato["avg_speed_out"] is None
    assert all(row["traffic_out"] is None for row in curato["series"])

    ferrarese = points["Via Ferrarese"]
    assert ferrarese["total_in"] == ferrarese["total_out"]
    assert all(
        row["traffic_out"] is None or row["traffic_out"] <= 0 for row in ferrarese["series"]
    )


def test_health_reports_last_traffic_update(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    before = client.get("/api/v1/health")
    assert before.status_code == 200
    assert before.json() == {"status": "ok", "traffic_updated_at": None}

    client.post("/api/v1/traffic/refresh", headers=auth_headers)
    after = client.get("/api/v1/health")
    assert after.json()["traffic_updated_at"] is not None

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import httpx

from cento_dashboard.models.weather import Measure
from cento_dashboard.timeseries.window import Window

SENSORNET_API_URL = "https://sensornet-api.lepida.it"


class SensornetError(ValueError):
    pass


def days_covering(window: Window) -> list[date]:
    # Real-time data is served per UTC calendar day.
    day = window.start.date()
    last = window.end.date()
    days: list[date] = []
    while day <= last:
        days.append(day)
        day += timedelta(days=1)
    return days


class SensornetClient:
    def __init__(
        self,
        *,
        user_agent: str,
        timeout_seconds: float,
        base_url: str = SENSORNET_API_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={
                "User-Agent": user_agent,
                "Accept": "application/json",
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def fetch_measures(self, sensor_id: int) -> list[Measure]:
        rows = self._get_list(f"/getMeasuresID/{int(sensor_id)}")
        measures: list[Measure] = []
        for row in rows:
            try:
                measures.append(
                    Measure(
                        id=int(row["id_misura"]),
                        description=str(row.get("descrizione") or ""),
                        unit=_str_or_none(row.get("descrizione_unita_misura")),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise SensornetError(f"Unexpected measure entry for sensor {sensor_id}") from e
        return measures

    def fetch_realtime_data(self, measure_id: int, day: date) -> list[dict[str, Any]]:
        return self._get_list(f"/getMeasureRealTimeData/{int(measure_id)}/{day.isoformat()}")

    def fetch_window_data(self, measure_id: int, window: Window) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for day in days_covering(window):
            records.extend(self.fetch_realtime_data(measure_id, day))
        return records

    def fetch_last_data(self, measure_ids: list[int]) -> list[dict[str, Any]]:
        if not measure_ids:
            return []
        joined = ",".join(str(int(m)) for m in measure_ids)
        return self._get_list(f"/getMeasureListLastData/{joined}")

    def _get_list(self, path: str) -> list[dict[str, Any]]:
        resp = self._client.get(path)
        resp.raise_for_status()
        try:
            payload = resp.json()
        except ValueError as e:
            raise SensornetError(f"Invalid JSON from {path}") from e
        if not isinstance(payload, list):
            raise SensornetError(f"Expected a list from {path}")
        return [row for row in payload if isinstance(row, dict)]


def _str_or_none(v: Any) -> str | None:
    if v is None:
        return None
    if isinstance(v, str):
        return v
    return str(v)

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from cento_dashboard.clients.sensornet import SensornetError
from cento_dashboard.models.weather import Measure
from cento_dashboard.timeseries.window import Window, align_down

# Sensor whose measure lookup always fails upstream.
BROKEN_SENSOR_ID = 12538

WEATHER_MEASURES = {
    12494: [Measure(id=124941, description="PIOGGIA CUMULATA", unit="mm")],
    12501: [
        Measure(id=125011, description="VELOCITA MEDIA VENTO", unit="m/s"),
        Measure(id=125012, description="DIREZIONE VENTO", unit="gradi"),
    ],
}


def _fmt(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S")


class FakeSensornetClient:
    """Serves a vehicle count of 5 and a steady speed every 15 minutes."""

    def __init__(self) -> None:
        self.realtime_calls: list[tuple[int, date]] = []
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def fetch_measures(self, sensor_id: int) -> list[Measure]:
        if sensor_id == BROKEN_SENSOR_ID:
            raise SensornetError(f"Unexpected measure entry for sensor {sensor_id}")
        if sensor_id in WEATHER_MEASURES:
            return list(WEATHER_MEASURES[sensor_id])
        return [
            Measure(id=sensor_id * 10 + 1, description="CONTATORE PARZIALE TRAFFICO"),
            Measure(id=sensor_id * 10 + 2, description="VELOCITA MEDIA VEICOLI", unit="km/h"),
        ]

    def fetch_realtime_data(self, measure_id: int, day: date) -> list[dict[str, Any]]:
        self.realtime_calls.append((measure_id, day))
        return []

    def fetch_window_data(self, measure_id: int, window: Window) -> list[dict[str, Any]]:
        is_counter = measure_id % 10 == 1
        records: list[dict[str, Any]] = []
        ts = align_down(window.start - timedelta(minutes=15))
        while ts <= window.end:
            value = "5" if is_counter else f"{40 + (ts.minute // 15) * 2}.0"
            records.append({"timestamp": _fmt(ts), "value": value})
            ts += timedelta(minutes=15)
        # Malformed upstream rows are skipped during parsing.
        records.append({"timestamp": _fmt(window.start), "value": "n/d"})
        return records

    def fetch_last_data(self, measure_ids: list[int]) -> list[dict[str, Any]]:
        return [
            {
                "id_measure": m,
                "value": "225" if m == 125012 else "1.5",
                "timestamp": "2024-11-20 08:15:00",
            }
            for m in measure_ids
        ]


class FailingSensornetClient(FakeSensornetClient):
    def fetch_measures(self, sensor_id: int) -> list[Measure]:
        raise SensornetError("Sensor network unavailable")

    def fetch_last_data(self, measure_ids: list[int]) -> list[dict[str, Any]]:
        raise SensornetError("Sensor network unavailable")


class FlakyStationClient(FakeSensornetClient):
    """Station 12501 is down; everything else answers normally."""

    def fetch_measures(self, sensor_id: int) -> list[Measure]:
        if sensor_id == 12501:
            raise SensornetError("Sensor network unavailable")
        return super().fetch_measures(sensor_id)

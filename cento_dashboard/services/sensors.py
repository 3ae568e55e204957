from __future__ import annotations

import logging

from cento_dashboard.clients.sensornet import SensornetClient
from cento_dashboard.models.weather import MonitoredSensor, SensorReadings
from cento_dashboard.services.weather import fetch_last_readings

logger = logging.getLogger(__name__)


class SensorDirectoryService:
    """Last reported value of every measure on a fixed list of nearby sensors."""

    def __init__(self, *, client: SensornetClient, sensors: list[MonitoredSensor]) -> None:
        self._client = client
        self._sensors = list(sensors)

    @property
    def sensors(self) -> list[MonitoredSensor]:
        return list(self._sensors)

    def latest(self) -> list[SensorReadings]:
        out: list[SensorReadings] = []
        for sensor in self._sensors:
            try:
                readings = fetch_last_readings(self._client, sensor.id)
            except Exception:
                logger.warning("Sensor %d unavailable", sensor.id, exc_info=True)
                out.append(SensorReadings(sensor=sensor, readings=(), available=False))
                continue
            out.append(SensorReadings(sensor=sensor, readings=tuple(readings)))
        return out

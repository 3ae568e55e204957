from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from cento_dashboard.timeseries.samples import Sample


@dataclass(frozen=True)
class Measure:
    id: int
    description: str
    unit: str | None = None


@dataclass(frozen=True)
class StationReading:
    station_id: int
    measure_id: int
    description: str
    unit: str | None
    value: float | None
    timestamp: datetime | None


@dataclass(frozen=True)
class WeatherParameter:
    """A dashboard card: measures whose description contains one of ``keys``."""

    label: str
    keys: tuple[str, ...]


@dataclass(frozen=True)
class ParameterReadings:
    parameter: WeatherParameter
    readings: tuple[StationReading, ...]


@dataclass(frozen=True)
class MeasureHistory:
    station_id: int
    measure_id: int
    description: str
    unit: str | None
    samples: tuple[Sample, ...]


@dataclass(frozen=True)
class MonitoredSensor:
    id: int
    name: str


@dataclass(frozen=True)
class SensorReadings:
    sensor: MonitoredSensor
    readings: tuple[StationReading, ...]
    available: bool = True

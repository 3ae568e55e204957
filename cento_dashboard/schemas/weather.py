from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from cento_dashboard.models.weather import MeasureHistory, ParameterReadings, SensorReadings


class StationReadingRead(BaseModel):
    station_id: int
    measure_id: int
    description: str
    unit: str | None = None
    value: float | None = None
    timestamp: datetime | None = None


class WeatherRefreshResponse(BaseModel):
    requested: int = Field(ge=0)
    stored: int = Field(ge=0)
    failed: int = Field(ge=0)
    skipped: bool = False
    retry_after_seconds: int | None = Field(default=None, ge=1)
    stations: list[int] = Field(default_factory=list)


class WeatherParameterRead(BaseModel):
    label: str
    keys: list[str]
    readings: list[StationReadingRead]

    @classmethod
    def from_model(cls, grouped: ParameterReadings) -> WeatherParameterRead:
        return cls(
            label=grouped.parameter.label,
            keys=list(grouped.parameter.keys),
            readings=[StationReadingRead.model_validate(r.__dict__) for r in grouped.readings],
        )


class HistorySampleRead(BaseModel):
    timestamp: datetime
    value: float


class MeasureHistoryRead(BaseModel):
    station_id: int
    measure_id: int
    description: str
    unit: str | None = None
    samples: list[HistorySampleRead]

    @classmethod
    def from_model(cls, history: MeasureHistory) -> MeasureHistoryRead:
        return cls(
            station_id=history.station_id,
            measure_id=history.measure_id,
            description=history.description,
            unit=history.unit,
            samples=[HistorySampleRead(timestamp=s.timestamp, value=s.value) for s in history.samples],
        )


class SensorReadingsRead(BaseModel):
    sensor_id: int
    name: str
    available: bool
    readings: list[StationReadingRead]

    @classmethod
    def from_model(cls, entry: SensorReadings) -> SensorReadingsRead:
        return cls(
            sensor_id=entry.sensor.id,
            name=entry.sensor.name,
            available=entry.available,
            readings=[StationReadingRead.model_validate(r.__dict__) for r in entry.readings],
        )

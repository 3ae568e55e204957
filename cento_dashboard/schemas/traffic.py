from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TrafficSample(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    value: float


class SpeedStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    min: float
    max: float
    avg: float


class SensorTrafficRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sensor_id: int = Field(ge=1)
    status: Literal["ok", "no-data"]
    computed_at: datetime
    total_count: float
    speed_stats: SpeedStatsRead | None = None
    counts: list[TrafficSample] = Field(default_factory=list)
    speeds: list[TrafficSample] = Field(default_factory=list)


class PointSensorRead(BaseModel):
    id: int
    name: str
    direction: float
    flow: Literal["inbound", "outbound"]
    status: Literal["ok", "no-data"]
    total_count: float
    speed_stats: SpeedStatsRead | None = None


class PointTrafficRowRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    traffic_in: float | None = None
    traffic_out: float | None = None
    speed_in: float | None = None
    speed_out: float | None = None


class PointTrafficRead(BaseModel):
    location: str = Field(min_length=1, max_length=128)
    lat: float
    lon: float
    total_in: float
    total_out: float
    avg_speed_in: float | None = None
    avg_speed_out: float | None = None
    sensors: list[PointSensorRead] = Field(default_factory=list)
    series: list[PointTrafficRowRead] = Field(default_factory=list)


class TrafficRefreshResponse(BaseModel):
    requested: int = Field(ge=0)
    resolved: int = Field(ge=0)
    no_data: int = Field(ge=0)
    skipped: bool = False
    retry_after_seconds: int | None = Field(default=None, ge=1)
    sensors: list[int] = Field(default_factory=list)

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from cento_dashboard.timeseries.aggregate import SpeedStats
from cento_dashboard.timeseries.pipeline import ResampledTraffic, traffic_status
from cento_dashboard.timeseries.samples import Sample

INBOUND = "inbound"
OUTBOUND = "outbound"


@dataclass(frozen=True)
class TrafficSensor:
    id: int
    name: str
    direction: float
    flow: str = INBOUND


@dataclass(frozen=True)
class TrafficPoint:
    location: str
    lat: float
    lon: float
    sensors: tuple[TrafficSensor, ...]


@dataclass(frozen=True)
class SensorTraffic:
    sensor_id: int
    computed_at: datetime
    total_count: float
    speed_stats: SpeedStats | None
    counts: tuple[Sample, ...] = ()
    speeds: tuple[Sample, ...] = ()

    @property
    def status(self) -> str:
        return traffic_status(self.counts, self.speed_stats)

    @classmethod
    def from_resampled(cls, sensor_id: int, resampled: ResampledTraffic) -> SensorTraffic:
        return cls(
            sensor_id=sensor_id,
            computed_at=resampled.now,
            total_count=resampled.total_count,
            speed_stats=resampled.speed_stats,
            counts=resampled.counts,
            speeds=resampled.speeds,
        )

    @classmethod
    def no_data(cls, sensor_id: int, computed_at: datetime) -> SensorTraffic:
        return cls(
            sensor_id=sensor_id,
            computed_at=computed_at,
            total_count=0.0,
            speed_stats=None,
        )


@dataclass(frozen=True)
class PointSensorTraffic:
    sensor: TrafficSensor
    traffic: SensorTraffic


@dataclass(frozen=True)
class PointTrafficRow:
    timestamp: datetime
    traffic_in: float | None = None
    traffic_out: float | None = None
    speed_in: float | None = None
    speed_out: float | None = None


@dataclass(frozen=True)
class PointTraffic:
    location: str
    lat: float
    lon: float
    total_in: float
    total_out: float
    avg_speed_in: float | None
    avg_speed_out: float | None
    sensors: tuple[PointSensorTraffic, ...]
    series: tuple[PointTrafficRow, ...]

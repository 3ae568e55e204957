from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from cento_dashboard.clients.sensornet import SensornetClient, SensornetError
from cento_dashboard.models.traffic import (
    INBOUND,
    OUTBOUND,
    PointSensorTraffic,
    PointTraffic,
    PointTrafficRow,
    SensorTraffic,
    TrafficPoint,
)
from cento_dashboard.models.weather import Measure
from cento_dashboard.services.refresh import RefreshLimiter
from cento_dashboard.timeseries.aggregate import speed_stats
from cento_dashboard.timeseries.pipeline import NO_DATA, resample_sensor
from cento_dashboard.timeseries.samples import Sample
from cento_dashboard.timeseries.window import DEFAULT_LOOKBACK, GRID_STEP, Window

logger = logging.getLogger(__name__)

COUNTER_MEASURE = "CONTATORE PARZIALE TRAFFICO"
SPEED_MEASURE = "VELOCITA MEDIA VEICOLI"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class TrafficRefreshResult:
    requested: int
    resolved: int
    no_data: int
    skipped: bool
    retry_after_seconds: int | None
    sensors: list[int]


class TrafficCache:
    """Latest result per sensor; a result for an older ``now`` never wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_sensor: dict[int, SensorTraffic] = {}

    def publish(self, result: SensorTraffic) -> bool:
        with self._lock:
            current = self._by_sensor.get(result.sensor_id)
            if current is not None and current.computed_at > result.computed_at:
                return False
            self._by_sensor[result.sensor_id] = result
            return True

    def get(self, *, sensor_id: int) -> SensorTraffic | None:
        with self._lock:
            return self._by_sensor.get(sensor_id)

    def snapshot(self, *, sensor_ids: list[int] | None = None) -> list[SensorTraffic]:
        with self._lock:
            if sensor_ids is None:
                return sorted(self._by_sensor.values(), key=lambda r: r.sensor_id)
            return [self._by_sensor[s] for s in sensor_ids if s in self._by_sensor]

    def has_any(self) -> bool:
        with self._lock:
            return bool(self._by_sensor)

    def last_updated(self) -> datetime | None:
        with self._lock:
            if not self._by_sensor:
                return None
            return max(r.computed_at for r in self._by_sensor.values())


class TrafficService:
    def __init__(
        self,
        *,
        client: SensornetClient,
        points: list[TrafficPoint],
        counter_measure: str = COUNTER_MEASURE,
        speed_measure: str = SPEED_MEASURE,
        lookback: timedelta = DEFAULT_LOOKBACK,
        step: timedelta = GRID_STEP,
        max_workers: int = 4,
        refresh_limiter: RefreshLimiter | None = None,
        cache: TrafficCache | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._points = list(points)
        self._counter_measure = counter_measure
        self._speed_measure = speed_measure
        self._lookback = lookback
        self._step = step
        self._max_workers = max(int(max_workers), 1)
        self._refresh_limiter = refresh_limiter
        self._cache = cache
        self._clock = clock

    @property
    def points(self) -> list[TrafficPoint]:
        return list(self._points)

    def sensor_ids(self) -> list[int]:
        return [s.id for p in self._points for s in p.sensors]

    def fetch_streams(
        self, sensor_id: int, window: Window
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        measures = self._client.fetch_measures(sensor_id)
        counter = _find_measure(measures, self._counter_measure)
        speed = _find_measure(measures, self._speed_measure)
        if counter is None or speed is None:
            raise SensornetError(f"Required measures not found for sensor {sensor_id}")
        return (
            self._client.fetch_window_data(counter.id, window),
            self._client.fetch_window_data(speed.id, window),
        )

    def compute_sensor(self, sensor_id: int, now: datetime) -> SensorTraffic:
        window = Window.trailing(now, self._lookback)
        try:
            counts, speeds = self.fetch_streams(sensor_id, window)
            resampled = resample_sensor(
                counts, speeds, now=now, lookback=self._lookback, step=self._step
            )
        except Exception:
            logger.warning("Traffic sensor %d has no data this cycle", sensor_id, exc_info=True)
            return SensorTraffic.no_data(sensor_id, window.end)
        return SensorTraffic.from_resampled(sensor_id, resampled)

    def compute_all(self, now: datetime) -> list[SensorTraffic]:
        sensor_ids = self.sensor_ids()
        if not sensor_ids:
            return []
        workers = min(self._max_workers, len(sensor_ids))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="traffic") as pool:
            return list(pool.map(lambda sid: self.compute_sensor(sid, now), sensor_ids))

    def refresh(self, *, force: bool = False) -> TrafficRefreshResult:
        now = self._clock()
        sensor_ids = self.sensor_ids()
        if not force and self._refresh_limiter is not None:
            allowed, retry_after = self._refresh_limiter.try_acquire(now=now)
            if not allowed:
                return TrafficRefreshResult(
                    requested=0,
                    resolved=0,
                    no_data=0,
                    skipped=True,
                    retry_after_seconds=retry_after,
                    sensors=sensor_ids,
                )

        results = self.compute_all(now)
        if self._cache is not None:
            for result in results:
                self._cache.publish(result)
        no_data = sum(1 for r in results if r.status == NO_DATA)
        logger.info(
            "Traffic refresh: %d sensor(s), %d without data", len(results), no_data
        )
        return TrafficRefreshResult(
            requested=len(sensor_ids),
            resolved=len(results) - no_data,
            no_data=no_data,
            skipped=False,
            retry_after_seconds=None,
            sensors=sensor_ids,
        )

    def tick(self) -> None:
        self.refresh()

    def latest(self) -> list[SensorTraffic]:
        sensor_ids = self.sensor_ids()
        if self._cache is not None and self._cache.has_any():
            cached = self._cache.snapshot(sensor_ids=sensor_ids)
            if len(cached) == len(sensor_ids):
                return cached

        results = self.compute_all(self._clock())
        if self._cache is not None:
            for result in results:
                self._cache.publish(result)
            return self._cache.snapshot(sensor_ids=sensor_ids)
        return results

    def sensor(self, sensor_id: int) -> SensorTraffic | None:
        if sensor_id not in self.sensor_ids():
            return None
        if self._cache is not None:
            cached = self._cache.get(sensor_id=sensor_id)
            if cached is not None:
                return cached
        result = self.compute_sensor(sensor_id, self._clock())
        if self._cache is not None:
            self._cache.publish(result)
        return result

    def point_summaries(self) -> list[PointTraffic]:
        by_sensor = {r.sensor_id: r for r in self.latest()}
        return [summarize_point(point, by_sensor) for point in self._points]


def summarize_point(point: TrafficPoint, by_sensor: dict[int, SensorTraffic]) -> PointTraffic:
    totals = {INBOUND: 0.0, OUTBOUND: 0.0}
    speeds: dict[str, list[Sample]] = {INBOUND: [], OUTBOUND: []}
    rows: dict[datetime, dict[str, float | None]] = {}
    results: list[PointSensorTraffic] = []

    for sensor in point.sensors:
        result = by_sensor.get(sensor.id)
        if result is None:
            continue
        results.append(PointSensorTraffic(sensor=sensor, traffic=result))
        inbound = sensor.flow == INBOUND

        totals[sensor.flow] += result.total_count
        for sample in result.counts:
            row = rows.setdefault(sample.timestamp, {})
            if inbound:
                row["traffic_in"] = sample.value
            else:
                # Outbound traffic is charted below the axis.
                row["traffic_out"] = -sample.value

        speeds[sensor.flow].extend(result.speeds)
        for sample in result.speeds:
            row = rows.setdefault(sample.timestamp, {})
            row["speed_in" if inbound else "speed_out"] = sample.value

    stats_in = speed_stats(speeds[INBOUND])
    stats_out = speed_stats(speeds[OUTBOUND])
    return PointTraffic(
        location=point.location,
        lat=point.lat,
        lon=point.lon,
        total_in=totals[INBOUND],
        total_out=totals[OUTBOUND],
        avg_speed_in=stats_in.avg if stats_in is not None else None,
        avg_speed_out=stats_out.avg if stats_out is not None else None,
        sensors=tuple(results),
        series=tuple(
            PointTrafficRow(timestamp=ts, **values) for ts, values in sorted(rows.items())
        ),
    )


def _find_measure(measures: list[Measure], description: str) -> Measure | None:
    for measure in measures:
        if measure.description.strip().upper() == description.strip().upper():
            return measure
    return None

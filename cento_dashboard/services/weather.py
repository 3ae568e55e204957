from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from cento_dashboard.clients.sensornet import SensornetClient
from cento_dashboard.models.weather import (
    Measure,
    MeasureHistory,
    ParameterReadings,
    StationReading,
    WeatherParameter,
)
from cento_dashboard.services.refresh import RefreshLimiter
from cento_dashboard.timeseries.samples import (
    parse_samples,
    parse_timestamp,
    parse_value,
    prepare_stream,
)
from cento_dashboard.timeseries.window import DEFAULT_LOOKBACK, Window

logger = logging.getLogger(__name__)

_COMPASS = ["↑ N", "↗ NE", "→ E", "↘ SE", "↓ S", "↙ SW", "← W", "↖ NW"]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def compass_label(degrees: float | None) -> str:
    if degrees is None:
        return ""
    return _COMPASS[int(((degrees % 360) + 22.5) // 45) % 8]


def fetch_last_readings(client: SensornetClient, station_id: int) -> list[StationReading]:
    """Latest value of every measure a station (or any sensor) exposes."""
    measures = client.fetch_measures(station_id)
    last = client.fetch_last_data([m.id for m in measures])
    by_measure: dict[int, dict[str, Any]] = {}
    for row in last:
        try:
            by_measure[int(row["id_measure"])] = row
        except (KeyError, TypeError, ValueError):
            continue
    return [_reading(station_id, m, by_measure.get(m.id)) for m in measures]


def group_by_parameter(
    parameters: list[WeatherParameter], readings: list[StationReading]
) -> list[ParameterReadings]:
    """Resolve each key to the first reading whose description contains it.

    ``readings`` are searched in order, so earlier stations win a key shared
    by several stations. A measure matched by two keys is listed once.
    """
    grouped: list[ParameterReadings] = []
    for parameter in parameters:
        matched: list[StationReading] = []
        for key in parameter.keys:
            needle = _normalize(key)
            reading = next((r for r in readings if needle in _normalize(r.description)), None)
            if reading is not None and reading not in matched:
                matched.append(reading)
        grouped.append(ParameterReadings(parameter=parameter, readings=tuple(matched)))
    return grouped


@dataclass(frozen=True)
class WeatherRefreshResult:
    requested: int
    stored: int
    failed: int
    skipped: bool
    retry_after_seconds: int | None
    stations: list[int]


class WeatherCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_station: dict[int, list[StationReading]] = {}

    def update(self, station_id: int, readings: list[StationReading]) -> None:
        with self._lock:
            self._by_station[station_id] = list(readings)

    def snapshot(self, *, stations: list[int] | None = None) -> list[StationReading]:
        with self._lock:
            if stations is None:
                stations = sorted(self._by_station)
            rows = [r for s in stations for r in self._by_station.get(s, [])]
        return rows

    def has_any(self) -> bool:
        with self._lock:
            return bool(self._by_station)


class WeatherService:
    def __init__(
        self,
        *,
        client: SensornetClient,
        station_ids: list[int],
        parameters: list[WeatherParameter] | None = None,
        history_lookback: timedelta = DEFAULT_LOOKBACK,
        refresh_limiter: RefreshLimiter | None = None,
        cache: WeatherCache | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._station_ids = list(station_ids)
        self._parameters = list(parameters or [])
        self._history_lookback = history_lookback
        self._refresh_limiter = refresh_limiter
        self._cache = cache
        self._clock = clock

    @property
    def station_ids(self) -> list[int]:
        return list(self._station_ids)

    def fetch_station(self, station_id: int) -> list[StationReading]:
        return fetch_last_readings(self._client, station_id)

    def _fetch_into_cache(self) -> tuple[list[StationReading], int]:
        rows: list[StationReading] = []
        failed = 0
        for station_id in self._station_ids:
            try:
                readings = self.fetch_station(station_id)
            except Exception:
                logger.warning("Weather station %d unavailable", station_id, exc_info=True)
                failed += 1
                continue
            if self._cache is not None:
                self._cache.update(station_id, readings)
            rows.extend(readings)
        return rows, failed

    def refresh(self, *, force: bool = False) -> WeatherRefreshResult:
        now = self._clock()
        if not force and self._refresh_limiter is not None:
            allowed, retry_after = self._refresh_limiter.try_acquire(now=now)
            if not allowed:
                return WeatherRefreshResult(
                    requested=0,
                    stored=0,
                    failed=0,
                    skipped=True,
                    retry_after_seconds=retry_after,
                    stations=self.station_ids,
                )

        _, failed = self._fetch_into_cache()
        return WeatherRefreshResult(
            requested=len(self._station_ids),
            stored=len(self._station_ids) - failed,
            failed=failed,
            skipped=False,
            retry_after_seconds=None,
            stations=self.station_ids,
        )

    def latest(self) -> list[StationReading]:
        if self._cache is not None and self._cache.has_any():
            return self._cache.snapshot(stations=self._station_ids)
        rows, _ = self._fetch_into_cache()
        return rows

    def parameters(self) -> list[ParameterReadings]:
        return group_by_parameter(self._parameters, self.latest())

    def history(self, measure_id: int, *, now: datetime | None = None) -> MeasureHistory | None:
        """Trailing-window series of one station measure; ``None`` if not a station measure."""
        reading = next((r for r in self.latest() if r.measure_id == measure_id), None)
        if reading is None:
            return None
        window = Window.trailing(now or self._clock(), self._history_lookback)
        records = self._client.fetch_window_data(measure_id, window)
        samples = [s for s in prepare_stream(parse_samples(records)) if window.contains(s.timestamp)]
        return MeasureHistory(
            station_id=reading.station_id,
            measure_id=measure_id,
            description=reading.description,
            unit=reading.unit,
            samples=tuple(samples),
        )


def _normalize(text: str) -> str:
    return text.replace("_", " ").strip().upper()


def _reading(station_id: int, measure: Measure, row: dict[str, Any] | None) -> StationReading:
    value: float | None = None
    timestamp: datetime | None = None
    if row is not None:
        try:
            value = parse_value(row.get("value"))
        except (TypeError, ValueError):
            value = None
        # Some stations report "timedate" instead of "timestamp".
        raw_time = row.get("timestamp") or row.get("timedate")
        try:
            timestamp = parse_timestamp(raw_time)
        except ValueError:
            timestamp = None
    return StationReading(
        station_id=station_id,
        measure_id=measure.id,
        description=measure.description,
        unit=measure.unit,
        value=value,
        timestamp=timestamp,
    )

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from cento_dashboard.models.traffic import (
    INBOUND,
    OUTBOUND,
    SensorTraffic,
    TrafficPoint,
    TrafficSensor,
)
from cento_dashboard.models.weather import MonitoredSensor, StationReading, WeatherParameter
from cento_dashboard.services.refresh import PeriodicRefresher, RefreshLimiter
from cento_dashboard.services.traffic import TrafficCache, TrafficService, summarize_point
from cento_dashboard.services.sensors import SensorDirectoryService
from cento_dashboard.services.weather import (
    WeatherCache,
    WeatherService,
    compass_label,
    group_by_parameter,
)
from cento_dashboard.timeseries.pipeline import resample_sensor
from cento_dashboard.timeseries.samples import Sample
from tests.fakes import (
    BROKEN_SENSOR_ID,
    FailingSensornetClient,
    FakeSensornetClient,
    FlakyStationClient,
)

NOW = datetime(2024, 11, 20, 9, 0, tzinfo=timezone.utc)


def _point() -> TrafficPoint:
    return TrafficPoint(
        location="Via del Curato",
        lat=44.722348,
        lon=11.278319,
        sensors=(
            TrafficSensor(id=12488, name="Ingresso a Cento", direction=0, flow=INBOUND),
            TrafficSensor(
                id=BROKEN_SENSOR_ID, name="Uscita da Cento", direction=180, flow=OUTBOUND
            ),
        ),
    )


def _service(**kwargs) -> TrafficService:
    return TrafficService(
        client=FakeSensornetClient(),
        points=[_point()],
        lookback=timedelta(hours=1),
        clock=lambda: NOW,
        **kwargs,
    )


def _result(sensor_id: int, computed_at: datetime, total: float) -> SensorTraffic:
    return SensorTraffic(
        sensor_id=sensor_id,
        computed_at=computed_at,
        total_count=total,
        speed_stats=None,
        counts=(Sample(computed_at, total),),
    )


def test_cache_keeps_most_recent_result() -> None:
    cache = TrafficCache()
    assert cache.publish(_result(1, NOW, 5.0))
    assert not cache.publish(_result(1, NOW - timedelta(minutes=5), 9.0))
    assert cache.get(sensor_id=1).total_count == 5.0

    assert cache.publish(_result(1, NOW + timedelta(minutes=5), 7.0))
    assert cache.get(sensor_id=1).total_count == 7.0
    assert cache.last_updated() == NOW + timedelta(minutes=5)


def test_cache_snapshot_follows_requested_order() -> None:
    cache = TrafficCache()
    cache.publish(_result(2, NOW, 1.0))
    cache.publish(_result(1, NOW, 1.0))
    assert [r.sensor_id for r in cache.snapshot()] == [1, 2]
    assert [r.sensor_id for r in cache.snapshot(sensor_ids=[2, 3, 1])] == [2, 1]


def test_failing_sensor_does_not_affect_others() -> None:
    results = {r.sensor_id: r for r in _service(max_workers=2).compute_all(NOW)}

    ok = results[12488]
    assert ok.status == "ok"
    assert ok.computed_at == NOW
    assert len(ok.counts) == 5
    assert ok.total_count > 0

    broken = results[BROKEN_SENSOR_ID]
    assert broken.status == "no-data"
    assert broken.total_count == 0.0
    assert broken.speed_stats is None


def test_refresh_publishes_and_respects_limiter() -> None:
    cache = TrafficCache()
    service = _service(cache=cache, refresh_limiter=RefreshLimiter(min_interval_seconds=60))

    first = service.refresh()
    assert not first.skipped
    assert (first.requested, first.resolved, first.no_data) == (2, 1, 1)
    assert cache.has_any()

    second = service.refresh()
    assert second.skipped
    assert second.retry_after_seconds == 60

    forced = service.refresh(force=True)
    assert not forced.skipped


def test_sensor_lookup_unknown_id() -> None:
    assert _service().sensor(99999) is None


def test_summarize_point_charts_outbound_below_axis() -> None:
    inbound = _result(12488, NOW, 4.0)
    outbound = _result(BROKEN_SENSOR_ID, NOW, 3.0)
    summary = summarize_point(_point(), {12488: inbound, BROKEN_SENSOR_ID: outbound})

    assert summary.total_in == 4.0
    assert summary.total_out == 3.0
    assert len(summary.series) == 1
    row = summary.series[0]
    assert row.traffic_in == 4.0
    assert row.traffic_out == -3.0
    assert summary.avg_speed_in is None


def test_refresh_limiter_disabled_when_zero() -> None:
    limiter = RefreshLimiter(min_interval_seconds=0)
    assert limiter.try_acquire(now=NOW) == (True, 0)
    assert limiter.try_acquire(now=NOW) == (True, 0)


@pytest.mark.parametrize(
    ("degrees", "label"),
    [(0, "↑ N"), (44, "↗ NE"), (90, "→ E"), (180, "↓ S"), (225, "↙ SW"), (350, "↑ N")],
)
def test_compass_label(degrees: float, label: str) -> None:
    assert compass_label(degrees) == label


def test_compass_label_none() -> None:
    assert compass_label(None) == ""


def test_weather_refresh_counts_failures() -> None:
    cache = WeatherCache()
    service = WeatherService(
        client=FailingSensornetClient(), station_ids=[12494, 12501], cache=cache
    )
    result = service.refresh(force=True)
    assert (result.requested, result.stored, result.failed) == (2, 0, 2)
    assert not cache.has_any()


def test_periodic_refresher_runs_until_stopped() -> None:
    ran = threading.Event()
    calls: list[int] = []

    def task() -> None:
        calls.append(1)
        ran.set()
        raise RuntimeError("upstream down")

    refresher = PeriodicRefresher(task=task, interval_seconds=30, name="test-refresh")
    refresher.start()
    assert ran.wait(timeout=2.0)
    assert refresher.is_running()

    refresher.stop(timeout=2.0)
    assert not refresher.is_running()
    assert len(calls) == 1


def test_weather_latest_cold_cache_skips_failing_station() -> None:
    cache = WeatherCache()
    service = WeatherService(
        client=FlakyStationClient(), station_ids=[12494, 12501], cache=cache
    )
    rows = service.latest()
    assert [r.measure_id for r in rows] == [124941]
    assert cache.snapshot() == rows


def _reading(measure_id: int, description: str) -> StationReading:
    return StationReading(
        station_id=1,
        measure_id=measure_id,
        description=description,
        unit=None,
        value=1.0,
        timestamp=NOW,
    )


def test_group_by_parameter_matches_first_reading_per_key() -> None:
    readings = [
        _reading(1, "TEMPERATURA MAX"),
        _reading(2, "DIREZIONE_VENTO"),
        _reading(3, "TEMPERATURA MIN"),
    ]
    temperature = WeatherParameter(
        label="Temperatura", keys=("TEMPERATURA", "TEMPERATURA MAX", "TEMPERATURA MIN")
    )
    wind = WeatherParameter(label="Vento", keys=("DIREZIONE VENTO",))
    grouped = group_by_parameter([temperature, wind], readings)

    # "TEMPERATURA" and "TEMPERATURA MAX" both resolve to measure 1.
    assert [r.measure_id for r in grouped[0].readings] == [1, 3]
    assert [r.measure_id for r in grouped[1].readings] == [2]


def test_weather_history_keeps_trailing_window() -> None:
    service = WeatherService(
        client=FakeSensornetClient(),
        station_ids=[12494, 12501],
        history_lookback=timedelta(hours=24),
    )
    history = service.history(124941, now=NOW)
    assert history is not None
    assert history.description == "PIOGGIA CUMULATA"
    assert history.samples[0].timestamp == NOW - timedelta(hours=24)
    assert history.samples[-1].timestamp == NOW
    assert len(history.samples) == 97

    assert service.history(99999, now=NOW) is None


def test_sensor_directory_marks_unreachable_sensor() -> None:
    directory = SensorDirectoryService(
        client=FakeSensornetClient(),
        sensors=[
            MonitoredSensor(id=BROKEN_SENSOR_ID, name="Rotto"),
            MonitoredSensor(id=1748, name="SP 10"),
        ],
    )
    broken, ok = directory.latest()
    assert not broken.available
    assert broken.readings == ()
    assert ok.available
    assert [r.measure_id for r in ok.readings] == [17481, 17482]


def test_sensor_status_agrees_with_resampled_status() -> None:
    stale = resample_sensor(
        [{"timestamp": "2024-11-17 09:00:00", "value": "37"}], [], now=NOW
    )
    fresh = resample_sensor(
        [{"timestamp": "2024-11-20 08:30:00", "value": "3"}], [], now=NOW
    )
    for resampled in (stale, fresh):
        assert SensorTraffic.from_resampled(1, resampled).status == resampled.status
    assert (stale.status, fresh.status) == ("no-data", "ok")

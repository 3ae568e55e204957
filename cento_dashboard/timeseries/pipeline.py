from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from cento_dashboard.timeseries.aggregate import SpeedStats, speed_stats, total_count
from cento_dashboard.timeseries.resample import (
    counter_baseline,
    from_cumulative,
    interpolate,
    to_cumulative,
    trim_to_window,
)
from cento_dashboard.timeseries.samples import Sample, parse_samples, to_utc
from cento_dashboard.timeseries.window import (
    DEFAULT_LOOKBACK,
    GRID_STEP,
    Window,
    build_grid,
    effective_start,
)

logger = logging.getLogger(__name__)

NO_DATA = "no-data"
OK = "ok"


def traffic_status(counts: Sequence[Sample], stats: SpeedStats | None) -> str:
    if not counts and stats is None:
        return NO_DATA
    return OK


@dataclass(frozen=True)
class ResampledTraffic:
    now: datetime
    grid: tuple[datetime, ...]
    counts: tuple[Sample, ...]
    speeds: tuple[Sample, ...]
    total_count: float
    speed_stats: SpeedStats | None

    @property
    def status(self) -> str:
        return traffic_status(self.counts, self.speed_stats)

    @classmethod
    def empty(cls, now: datetime) -> ResampledTraffic:
        return cls(
            now=to_utc(now),
            grid=(),
            counts=(),
            speeds=(),
            total_count=0.0,
            speed_stats=None,
        )


def resample_sensor(
    count_records: Iterable[Mapping[str, Any]],
    speed_records: Iterable[Mapping[str, Any]],
    *,
    now: datetime,
    lookback: timedelta = DEFAULT_LOOKBACK,
    step: timedelta = GRID_STEP,
) -> ResampledTraffic:
    """Resample one traffic sensor's trailing window onto the fixed grid.

    ``count_records`` are per-period vehicle increments and ``speed_records``
    instantaneous speeds, both as raw ``{timestamp, value}`` records covering
    the calendar days that span the window. ``now`` is explicit so that the
    result only depends on the arguments.
    """
    window = Window.trailing(now, lookback)
    counts = counter_baseline(trim_to_window(parse_samples(count_records), window), window)
    speeds = trim_to_window(parse_samples(speed_records), window)
    if not counts and not speeds:
        return ResampledTraffic.empty(window.end)

    grid = build_grid(effective_start(window, counts, speeds), window.end, step)
    if not grid:
        logger.debug("Empty grid for window %s..%s", window.start, window.end)
        return ResampledTraffic.empty(window.end)

    resampled_speeds = interpolate(grid, speeds)
    resampled_counts = from_cumulative(interpolate(grid, to_cumulative(counts), hold=True))

    return ResampledTraffic(
        now=window.end,
        grid=grid,
        counts=tuple(resampled_counts),
        speeds=tuple(resampled_speeds),
        total_count=total_count(resampled_counts),
        speed_stats=speed_stats(resampled_speeds),
    )

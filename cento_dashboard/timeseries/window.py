from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from cento_dashboard.timeseries.samples import Sample, to_utc

GRID_STEP = timedelta(minutes=15)
DEFAULT_LOOKBACK = timedelta(hours=24)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime

    @classmethod
    def trailing(cls, now: datetime, lookback: timedelta = DEFAULT_LOOKBACK) -> Window:
        now = to_utc(now)
        return cls(start=now - lookback, end=now)

    def contains(self, t: datetime) -> bool:
        return self.start <= t <= self.end


def align_down(t: datetime, step: timedelta = GRID_STEP) -> datetime:
    """Floor ``t`` to the most recent multiple of ``step`` since the Unix epoch."""
    if step <= timedelta(0):
        raise ValueError("step must be positive")
    return _EPOCH + ((to_utc(t) - _EPOCH) // step) * step


def effective_start(window: Window, *streams: Sequence[Sample]) -> datetime:
    # A sensor that came online inside the window starts its grid at its first sample.
    earliest = [stream[0].timestamp for stream in streams if stream]
    if not earliest:
        return window.start
    return max(window.start, min(earliest))


def build_grid(
    start: datetime, end: datetime, step: timedelta = GRID_STEP
) -> tuple[datetime, ...]:
    aligned_start = align_down(start, step)
    aligned_end = align_down(end, step)
    if aligned_start > aligned_end:
        return ()
    count = (aligned_end - aligned_start) // step
    return tuple(aligned_start + i * step for i in range(count + 1))

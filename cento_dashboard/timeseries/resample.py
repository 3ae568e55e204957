from __future__ import annotations

import bisect
import math
from collections.abc import Iterable, Sequence
from datetime import datetime

from cento_dashboard.timeseries.samples import SEED_TIMESTAMP, Sample, prepare_stream
from cento_dashboard.timeseries.window import Window


def trim_to_window(samples: Iterable[Sample], window: Window) -> list[Sample]:
    """Keep the samples inside ``window`` plus the one right before it.

    The carried-in sample is the left bracket for the first grid instants. When
    nothing reaches the window, the latest stale sample is returned alone.
    """
    ordered = prepare_stream(samples)
    if not ordered:
        return []

    timestamps = [s.timestamp for s in ordered]
    first = bisect.bisect_left(timestamps, window.start)
    if first == len(ordered):
        return [ordered[-1]]

    last = bisect.bisect_right(timestamps, window.end)
    trimmed = ordered[first:last]
    if first > 0:
        trimmed.insert(0, ordered[first - 1])
    return trimmed


def counter_baseline(samples: Sequence[Sample], window: Window) -> list[Sample]:
    """Prepare a trimmed counter stream for totalling over ``window``.

    Increments reported before the window belong to earlier periods: a
    carried-in report keeps its timestamp as a bracket but contributes zero,
    and a stream with nothing inside the window has no traffic at all.
    """
    if not samples or samples[-1].timestamp < window.start:
        return []
    if samples[0].timestamp < window.start:
        return [Sample(timestamp=samples[0].timestamp, value=0.0), *samples[1:]]
    return list(samples)


def to_cumulative(samples: Sequence[Sample]) -> list[Sample]:
    """Prefix-sum increments into a running total led by a zero seed point."""
    if not samples:
        return []
    points = [Sample(timestamp=SEED_TIMESTAMP, value=0.0)]
    total = 0.0
    for sample in samples:
        total += sample.value
        points.append(Sample(timestamp=sample.timestamp, value=total))
    return points


def from_cumulative(points: Sequence[Sample], *, seed: float = 0.0) -> list[Sample]:
    increments: list[Sample] = []
    previous = seed
    for point in points:
        increments.append(Sample(timestamp=point.timestamp, value=point.value - previous))
        previous = point.value
    return increments


def interpolate(
    grid: Sequence[datetime], samples: Sequence[Sample], *, hold: bool = False
) -> list[Sample]:
    """Resample a sorted stream onto ``grid``.

    Linear between the nearest valid samples on each side of a grid instant;
    instants without both brackets are left out. With ``hold`` the latest
    sample at or before the instant is carried forward instead, which is how a
    running total behaves between reports.
    """
    valid = [s for s in samples if math.isfinite(s.value)]
    out: list[Sample] = []
    i = -1  # index of the latest sample at or before the current instant
    for t in grid:
        while i + 1 < len(valid) and valid[i + 1].timestamp <= t:
            i += 1
        left = valid[i] if i >= 0 else None

        if left is not None and left.timestamp == t:
            out.append(Sample(timestamp=t, value=left.value))
            continue
        if hold:
            if left is not None:
                out.append(Sample(timestamp=t, value=left.value))
            continue

        right = valid[i + 1] if i + 1 < len(valid) else None
        if left is None or right is None:
            continue
        span = (right.timestamp - left.timestamp).total_seconds()
        offset = (t - left.timestamp).total_seconds()
        out.append(
            Sample(timestamp=t, value=left.value + (right.value - left.value) * offset / span)
        )
    return out

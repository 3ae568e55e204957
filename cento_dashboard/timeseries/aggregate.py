from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from cento_dashboard.timeseries.samples import Sample


@dataclass(frozen=True)
class SpeedStats:
    min: float
    max: float
    avg: float


def _present(points: Sequence[Sample]) -> list[float]:
    return [p.value for p in points if math.isfinite(p.value)]


def total_count(points: Sequence[Sample]) -> float:
    return math.fsum(_present(points))


def speed_stats(points: Sequence[Sample]) -> SpeedStats | None:
    # None is the "no data" state; there is no min/max/avg of nothing.
    values = _present(points)
    if not values:
        return None
    return SpeedStats(min=min(values), max=max(values), avg=math.fsum(values) / len(values))

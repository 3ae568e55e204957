from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

# Sorts before every real instant; marks the zero point of a running total.
SEED_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Sample:
    timestamp: datetime
    value: float


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    # Sensornet sends "2024-11-20 08:15:00" in UTC without an offset.
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip().replace(" ", "T", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def parse_value(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid value: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Non-finite value: {value!r}")
    return number


def parse_samples(records: Iterable[Mapping[str, Any]]) -> list[Sample]:
    """Convert raw ``{timestamp, value}`` records, dropping malformed ones."""
    samples: list[Sample] = []
    dropped = 0
    for record in records:
        try:
            samples.append(
                Sample(
                    timestamp=parse_timestamp(record.get("timestamp")),
                    value=parse_value(record.get("value")),
                )
            )
        except (AttributeError, TypeError, ValueError):
            dropped += 1
    if dropped:
        logger.debug("Dropped %d malformed sample(s) of %d", dropped, dropped + len(samples))
    return samples


def prepare_stream(samples: Iterable[Sample]) -> list[Sample]:
    by_timestamp: dict[datetime, Sample] = {}
    for sample in samples:
        by_timestamp[sample.timestamp] = sample
    return sorted(by_timestamp.values(), key=lambda s: s.timestamp)

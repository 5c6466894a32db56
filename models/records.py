"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, Optional

ALLOWED_METRICS: tuple[str, ...] = ("temperature", "humidity", "wind_speed")


class Statistic(str, Enum):
    """Statistic reported per (sensor, metric) group."""

    min = "min"
    max = "max"
    sum = "sum"
    avg = "avg"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single timestamped measurement for one sensor and metric type."""

    sensor_id: int
    metric_type: str
    metric_value: float
    timestamp: datetime
    reading_id: Optional[int] = None


class GroupKey(NamedTuple):
    sensor_id: int
    metric_type: str


@dataclass(frozen=True, slots=True)
class AggregateRow:
    sensor_id: int
    metric_type: str
    value: float
    count: int


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

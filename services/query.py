"""Read queries and ingestion over the reading store."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, FrozenSet, Optional

from app.schemas import StatsResponse, StatsRow, StatsWindow
from datastore.readings import ReadingStore, build_default_store
from models.records import ALLOWED_METRICS, SensorReading, Statistic, ensure_utc
from services.aggregator import Aggregator
from services.errors import (
    InvalidMetricListError,
    InvalidMetricTypeError,
    InvalidSensorListError,
    InvalidStatError,
    InvalidWindowError,
    ReadingStoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)
MIN_WINDOW_HOURS = 24
MAX_WINDOW_HOURS = 31 * 24

_INTEGER_TOKEN = re.compile(r"[+-]?[0-9]+")
_SENSOR_ID_RANGE = range(-(2**63), 2**63)
_ALLOWED_LABEL = ", ".join(ALLOWED_METRICS)
_STAT_LABEL = ",".join(stat.value for stat in Statistic)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _split_csv(csv: Optional[str]) -> Optional[list[str]]:
    if csv is None or not csv.strip():
        return None
    return [token.strip() for token in csv.split(",") if token.strip()]


def parse_sensor_ids(csv: Optional[str]) -> FrozenSet[int]:
    """Parse ``"1, 2,3"`` into sensor ids; an empty set means no filter."""
    tokens = _split_csv(csv)
    if tokens is None:
        return frozenset()
    if not all(_INTEGER_TOKEN.fullmatch(token) for token in tokens):
        raise InvalidSensorListError("sensors must be comma-separated integers")
    sensor_ids = frozenset(int(token) for token in tokens)
    # Signed 64-bit ids only.
    if not all(sensor_id in _SENSOR_ID_RANGE for sensor_id in sensor_ids):
        raise InvalidSensorListError("sensors must be comma-separated integers")
    return sensor_ids


def parse_metric_types(csv: Optional[str]) -> FrozenSet[str]:
    """Parse and lower-case metric names; an empty set means no filter."""
    tokens = _split_csv(csv)
    if tokens is None:
        return frozenset()
    metrics = frozenset(token.lower() for token in tokens)
    if not metrics <= set(ALLOWED_METRICS):
        raise InvalidMetricListError(f"metrics must be within {_ALLOWED_LABEL}")
    return metrics


def parse_statistic(stat: Optional[str]) -> Statistic:
    if stat is None or stat == "":
        return Statistic.avg
    key = stat.lower()
    try:
        return Statistic(key)
    except ValueError as exc:
        raise InvalidStatError(f"stat must be one of {_STAT_LABEL}") from exc


def resolve_window(
    start: Optional[datetime], end: Optional[datetime], now: datetime
) -> tuple[datetime, datetime]:
    """Default to the trailing 24 hours unless both bounds are supplied."""
    if start is None or end is None:
        end = ensure_utc(now)
        return end - DEFAULT_WINDOW, end
    return ensure_utc(start), ensure_utc(end)


def check_window(start: datetime, end: datetime) -> None:
    # Whole hours, sub-hour remainder dropped.
    hours = (end - start) // timedelta(hours=1)
    if hours < MIN_WINDOW_HOURS or hours > MAX_WINDOW_HOURS:
        raise InvalidWindowError("date window must be between 1 and 31 days")


def normalize_metric_type(metric_type: str) -> str:
    return metric_type.strip().lower()


class QueryService:
    """Validates query parameters and answers reads against the reading store."""

    def __init__(
        self,
        store: ReadingStore,
        aggregator: Aggregator,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.clock = clock

    def compute_stats(
        self,
        sensors: Optional[str] = None,
        metrics: Optional[str] = None,
        stat: Optional[str] = "avg",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> StatsResponse:
        """Aggregate readings per (sensor, metric) over a bounded window.

        Checks run in a fixed order (window, stat, sensors, metrics) and the
        first failure is raised as a :class:`ValidationError` before the store
        is touched.
        """
        window_start, window_end = resolve_window(start, end, self.clock())
        try:
            check_window(window_start, window_end)
            statistic = parse_statistic(stat)
            sensor_ids = parse_sensor_ids(sensors)
            metric_types = parse_metric_types(metrics)
        except ValidationError as exc:
            logger.warning(
                "Rejected stats query",
                extra={
                    "reason": exc.message,
                    "window_start": window_start.isoformat(),
                    "window_end": window_end.isoformat(),
                },
            )
            raise

        try:
            fetched = self.store.range_fetch(window_start, window_end)
        except ReadingStoreError:
            logger.exception(
                "Reading store failed during stats query",
                extra={"stat": statistic.value},
            )
            raise

        selected = [
            reading
            for reading in fetched
            if (not sensor_ids or reading.sensor_id in sensor_ids)
            and (not metric_types or reading.metric_type in metric_types)
        ]
        rows = self.aggregator.aggregate(selected, statistic)

        logger.info(
            "Computed stats",
            extra={
                "stat": statistic.value,
                "window_start": window_start.isoformat(),
                "window_end": window_end.isoformat(),
                "row_count": len(selected),
                "result_count": len(rows),
            },
        )
        return StatsResponse(
            window=StatsWindow(start=window_start, end=window_end),
            stat=statistic,
            results=[
                StatsRow(
                    sensor_id=row.sensor_id,
                    metric_type=row.metric_type,
                    value=row.value,
                    count=row.count,
                )
                for row in rows
            ],
        )

    def query_readings(
        self, sensor_id: int, metric_type: str, start: datetime, end: datetime
    ) -> list[SensorReading]:
        """Exact-match window query for one sensor and metric type."""
        matches = self.store.find_matching(
            sensor_id, normalize_metric_type(metric_type), start, end
        )
        return sorted(matches, key=lambda reading: reading.timestamp)

    def record_reading(
        self,
        sensor_id: int,
        metric_type: str,
        metric_value: float,
        timestamp: Optional[datetime] = None,
    ) -> SensorReading:
        normalized = normalize_metric_type(metric_type)
        if normalized not in ALLOWED_METRICS:
            raise InvalidMetricTypeError(f"metricType must be one of {_ALLOWED_LABEL}")
        reading = SensorReading(
            sensor_id=sensor_id,
            metric_type=normalized,
            metric_value=metric_value,
            timestamp=ensure_utc(timestamp) if timestamp is not None else self.clock(),
        )
        stored = self.store.put_reading(reading)
        logger.debug(
            "Stored reading",
            extra={"sensor_id": stored.sensor_id, "metric_type": stored.metric_type},
        )
        return stored

    def list_readings(self) -> list[SensorReading]:
        return sorted(self.store.scan(), key=lambda reading: reading.timestamp)


@lru_cache
def build_default_query_service() -> QueryService:
    """Factory that wires the query service with the default store."""
    return QueryService(store=build_default_store(), aggregator=Aggregator())

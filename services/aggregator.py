"""Aggregation logic for sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from models.records import AggregateRow, GroupKey, SensorReading, Statistic


@dataclass
class GroupSummary:
    """Running statistics for the readings of one (sensor, metric) group."""

    count: int = 0
    min_value: float = 0.0
    max_value: float = 0.0
    sum_value: float = 0.0

    def add(self, value: float) -> None:
        if self.count == 0:
            self.min_value = value
            self.max_value = value
        else:
            if value < self.min_value:
                self.min_value = value
            if value > self.max_value:
                self.max_value = value
        self.sum_value += value
        self.count += 1

    @property
    def mean_value(self) -> float:
        return self.sum_value / self.count


def select_value(summary: GroupSummary, statistic: Statistic) -> float:
    if statistic is Statistic.min:
        return summary.min_value
    if statistic is Statistic.max:
        return summary.max_value
    if statistic is Statistic.sum:
        return summary.sum_value
    return summary.mean_value


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def group(self, readings: Iterable[SensorReading]) -> Dict[GroupKey, GroupSummary]:
        groups: Dict[GroupKey, GroupSummary] = {}
        for reading in readings:
            key = GroupKey(reading.sensor_id, reading.metric_type)
            summary = groups.get(key)
            if summary is None:
                summary = groups[key] = GroupSummary()
            summary.add(reading.metric_value)
        return groups

    def aggregate(
        self, readings: Iterable[SensorReading], statistic: Statistic
    ) -> List[AggregateRow]:
        """Return one row per group, ordered by sensor id then metric type."""

        rows = [
            AggregateRow(
                sensor_id=key.sensor_id,
                metric_type=key.metric_type,
                value=select_value(summary, statistic),
                count=summary.count,
            )
            for key, summary in self.group(readings).items()
        ]
        return sorted(rows, key=lambda row: (row.sensor_id, row.metric_type))

"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import SensorReading, Statistic


class ReadingCreate(BaseModel):
    """Request body for ingesting a single reading."""

    model_config = ConfigDict(populate_by_name=True)

    sensor_id: int = Field(..., ge=0, alias="sensorId")
    metric_type: str = Field(..., min_length=1, alias="metricType")
    metric_value: float = Field(..., alias="metricValue")
    timestamp: Optional[datetime] = Field(
        default=None, description="Defaults to the time of ingestion when omitted."
    )


class ReadingOut(BaseModel):
    """A stored reading as returned by the API."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    sensor_id: int = Field(..., alias="sensorId")
    metric_type: str = Field(..., alias="metricType")
    metric_value: float = Field(..., alias="metricValue")
    timestamp: datetime

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "ReadingOut":
        return cls(
            id=reading.reading_id,
            sensor_id=reading.sensor_id,
            metric_type=reading.metric_type,
            metric_value=reading.metric_value,
            timestamp=reading.timestamp,
        )


class StatsWindow(BaseModel):
    """The resolved window a stats query was evaluated over."""

    start: datetime
    end: datetime


class StatsRow(BaseModel):
    """Selected statistic for one (sensor, metric) group."""

    model_config = ConfigDict(populate_by_name=True)

    sensor_id: int = Field(..., alias="sensorId")
    metric_type: str = Field(..., alias="metricType")
    value: float
    count: int = Field(..., ge=1)


class StatsResponse(BaseModel):
    window: StatsWindow
    stat: Statistic
    results: List[StatsRow] = Field(default_factory=list)

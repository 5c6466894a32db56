"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import ReadingCreate, ReadingOut, StatsResponse
from services.errors import ReadingStoreError, ValidationError
from services.query import QueryService, build_default_query_service

router = APIRouter()


def get_query_service() -> QueryService:
    return build_default_query_service()


@router.post(
    "/api/metrics",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingOut,
    summary="Ingest a single sensor reading.",
)
async def create_reading(
    payload: ReadingCreate,
    service: QueryService = Depends(get_query_service),
) -> ReadingOut:
    try:
        reading = service.record_reading(
            sensor_id=payload.sensor_id,
            metric_type=payload.metric_type,
            metric_value=payload.metric_value,
            timestamp=payload.timestamp,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc
    except ReadingStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return ReadingOut.from_reading(reading)


@router.get(
    "/api/metrics",
    response_model=List[ReadingOut],
    summary="List every stored reading.",
)
async def list_readings(
    service: QueryService = Depends(get_query_service),
) -> List[ReadingOut]:
    return [ReadingOut.from_reading(reading) for reading in service.list_readings()]


@router.get(
    "/api/metrics/query",
    response_model=List[ReadingOut],
    summary="Readings for one sensor and metric type within a time window.",
)
async def query_readings(
    sensor_id: int = Query(..., alias="sensorId"),
    metric_type: str = Query(..., alias="metricType"),
    start: datetime = Query(...),
    end: datetime = Query(...),
    service: QueryService = Depends(get_query_service),
) -> List[ReadingOut]:
    readings = service.query_readings(sensor_id, metric_type, start, end)
    return [ReadingOut.from_reading(reading) for reading in readings]


@router.get(
    "/api/metrics/stats",
    response_model=StatsResponse,
    summary="Aggregate readings per sensor and metric type over a window.",
)
async def reading_stats(
    sensors: Optional[str] = Query(None, description="Comma-separated sensor ids."),
    metrics: Optional[str] = Query(None, description="Comma-separated metric types."),
    stat: str = Query("avg", description="One of min, max, sum, avg."),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: QueryService = Depends(get_query_service),
) -> StatsResponse:
    try:
        return service.compute_stats(
            sensors=sensors, metrics=metrics, stat=stat, start=start, end=end
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc
    except ReadingStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reading store is unavailable.",
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}

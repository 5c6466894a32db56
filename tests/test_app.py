from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.readings import ReadingStore, build_default_store
from services.aggregator import Aggregator
from services.errors import ReadingStoreError
from services.query import QueryService, build_default_query_service
from settings import get_settings


class BrokenStore(ReadingStore):
    def range_fetch(self, start, end):
        raise ReadingStoreError("backing store offline")


def _install_service(monkeypatch, service: QueryService) -> None:
    def build_test_service() -> QueryService:
        return service

    build_test_service.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_query_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_query_service", build_test_service)


@pytest.fixture
def api_client(tmp_path, monkeypatch) -> Iterator[TestClient]:
    store = ReadingStore(name="test", persistence_path=tmp_path / "readings.json")
    _install_service(monkeypatch, QueryService(store=store, aggregator=Aggregator()))

    app = create_app()
    with TestClient(app) as client:
        yield client


def _iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _post_reading(client: TestClient, sensor_id: int, metric: str, value: float, at: datetime) -> None:
    response = client.post(
        "/api/metrics",
        json={
            "sensorId": sensor_id,
            "metricType": metric,
            "metricValue": value,
            "timestamp": at.isoformat(),
        },
    )
    assert response.status_code == 201


def test_lifespan_clears_service_cache(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("READINGS_PERSISTENCE_PATH", str(tmp_path / "readings.json"))
    get_settings.cache_clear()
    build_default_store.cache_clear()
    build_default_query_service.cache_clear()
    app = create_app()

    with TestClient(app):
        assert build_default_query_service.cache_info().currsize == 1

    assert build_default_query_service.cache_info().currsize == 0
    build_default_store.cache_clear()
    get_settings.cache_clear()


def test_post_normalizes_metric_and_defaults_timestamp(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/metrics",
        json={"sensorId": 1, "metricType": "Temperature", "metricValue": 21.3},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["id"] is not None
    assert body["metricType"] == "temperature"
    assert body["timestamp"]


def test_post_rejects_unknown_metric(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/metrics",
        json={"sensorId": 1, "metricType": "pressure", "metricValue": 1013.0},
    )

    assert response.status_code == 400
    assert "metricType must be one of" in response.json()["detail"]


def test_list_returns_stored_readings(api_client: TestClient) -> None:
    now = datetime.now(timezone.utc)
    _post_reading(api_client, 1, "humidity", 0.55, now - timedelta(hours=1))
    _post_reading(api_client, 2, "wind_speed", 4.2, now - timedelta(hours=2))

    response = api_client.get("/api/metrics")

    assert response.status_code == 200
    assert [item["sensorId"] for item in response.json()] == [2, 1]


def test_query_returns_only_requested_sensor_metric_in_window(api_client: TestClient) -> None:
    now = datetime.now(timezone.utc)
    _post_reading(api_client, 1, "temperature", 21.3, now - timedelta(hours=3))
    _post_reading(api_client, 1, "temperature", 19.7, now - timedelta(hours=2))
    _post_reading(api_client, 1, "humidity", 0.55, now - timedelta(hours=2))

    response = api_client.get(
        "/api/metrics/query",
        params={
            "sensorId": 1,
            "metricType": "temperature",
            "start": _iso(now - timedelta(days=1)),
            "end": _iso(now + timedelta(days=1)),
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 2
    assert all(item["metricType"] == "temperature" for item in body)


def test_stats_avg_over_default_window(api_client: TestClient) -> None:
    now = datetime.now(timezone.utc)
    _post_reading(api_client, 1, "temperature", 21.3, now - timedelta(hours=1))
    _post_reading(api_client, 1, "temperature", 19.7, now - timedelta(hours=2))
    _post_reading(api_client, 1, "temperature", 10.0, now - timedelta(days=2))

    response = api_client.get(
        "/api/metrics/stats",
        params={"sensors": "1", "metrics": "temperature", "stat": "avg"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["stat"] == "avg"
    assert body["window"]["start"] and body["window"]["end"]
    assert body["results"] == [
        {
            "sensorId": 1,
            "metricType": "temperature",
            "value": pytest.approx((21.3 + 19.7) / 2),
            "count": 2,
        }
    ]


def test_stats_max_per_sensor_for_explicit_day(api_client: TestClient) -> None:
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)
    _post_reading(api_client, 2, "temperature", 25.0, start + timedelta(hours=9))
    _post_reading(api_client, 1, "temperature", 21.3, start + timedelta(hours=7))
    _post_reading(api_client, 1, "temperature", 19.7, start + timedelta(hours=8))

    response = api_client.get(
        "/api/metrics/stats",
        params={
            "metrics": "temperature",
            "stat": "MAX",
            "start": _iso(start),
            "end": _iso(start + timedelta(days=1)),
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["stat"] == "max"
    assert [(row["sensorId"], row["value"], row["count"]) for row in body["results"]] == [
        (1, 21.3, 2),
        (2, 25.0, 1),
    ]


@pytest.mark.parametrize(
    ("params", "message"),
    [
        ({"stat": "median"}, "stat must be one of min,max,sum,avg"),
        ({"stat": "   "}, "stat must be one of min,max,sum,avg"),
        ({"sensors": "1,99999999999999999999"}, "sensors must be comma-separated integers"),
        ({"sensors": "1,two"}, "sensors must be comma-separated integers"),
        ({"metrics": "pressure"}, "metrics must be within temperature, humidity, wind_speed"),
    ],
)
def test_stats_validation_errors_return_bad_request(api_client: TestClient, params, message) -> None:
    response = api_client.get("/api/metrics/stats", params=params)

    assert response.status_code == 400
    assert response.json() == {"detail": message}


def test_stats_rejects_window_shorter_than_one_day(api_client: TestClient) -> None:
    end = datetime.now(timezone.utc)
    response = api_client.get(
        "/api/metrics/stats",
        params={
            "metrics": "temperature",
            "start": _iso(end - timedelta(hours=12)),
            "end": _iso(end),
        },
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "date window must be between 1 and 31 days"


def test_stats_store_failure_returns_service_unavailable(monkeypatch) -> None:
    _install_service(
        monkeypatch, QueryService(store=BrokenStore(name="broken"), aggregator=Aggregator())
    )

    with TestClient(create_app()) as client:
        response = client.get("/api/metrics/stats")

    assert response.status_code == 503
    assert response.json()["detail"] == "Reading store is unavailable."


def test_healthcheck(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the sensor metrics service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def post_reading(
        self,
        sensor_id: int,
        metric_type: str,
        metric_value: float,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "sensorId": sensor_id,
            "metricType": metric_type,
            "metricValue": metric_value,
        }
        if timestamp:
            body["timestamp"] = timestamp
        try:
            response = self._client.post("/api/metrics", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def query_readings(
        self, sensor_id: int, metric_type: str, start: str, end: str
    ) -> List[Dict[str, Any]]:
        params = {
            "sensorId": sensor_id,
            "metricType": metric_type,
            "start": start,
            "end": end,
        }
        try:
            response = self._client.get("/api/metrics/query", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_stats(
        self,
        sensors: Optional[str] = None,
        metrics: Optional[str] = None,
        stat: str = "avg",
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            key: value
            for key, value in {
                "sensors": sensors,
                "metrics": metrics,
                "stat": stat,
                "start": start,
                "end": end,
            }.items()
            if value is not None
        }
        try:
            response = self._client.get("/api/metrics/stats", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_key_values(
        [
            ("id", payload.get("id")),
            ("sensorId", payload.get("sensorId")),
            ("metricType", payload.get("metricType")),
            ("metricValue", payload.get("metricValue")),
            ("timestamp", payload.get("timestamp")),
        ]
    )


def render_readings(readings: Iterable[Dict[str, Any]]) -> None:
    echo_heading("Readings")
    items = list(readings)
    if not items:
        typer.echo("No readings in window.")
        return
    for reading in items:
        typer.echo(
            f"  - {reading.get('timestamp')}: {reading.get('metricValue')}"
        )


def render_stats(payload: Dict[str, Any]) -> None:
    window = payload.get("window") or {}
    echo_heading("Window")
    echo_key_values(
        [
            ("start", window.get("start")),
            ("end", window.get("end")),
            ("stat", payload.get("stat")),
        ]
    )

    results = payload.get("results") or []
    typer.echo()
    echo_heading("Results")
    if not results:
        typer.echo("No readings matched.")
        return
    for row in results:
        typer.echo(
            f"  - sensor {row.get('sensorId')} {row.get('metricType')}: "
            f"{row.get('value')} (count={row.get('count')})"
        )

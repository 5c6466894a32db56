from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_reading, render_readings, render_stats


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the sensor metrics service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    sensor_id: int = typer.Argument(..., min=0, help="Numeric sensor identifier."),
    metric_type: str = typer.Argument(..., help="temperature, humidity or wind_speed."),
    metric_value: float = typer.Argument(..., help="Measured value."),
    timestamp: Optional[str] = typer.Option(
        None,
        "--timestamp",
        "-t",
        help="ISO-8601 timestamp; the server uses the current time when omitted.",
    ),
) -> None:
    """Send a single reading to the service."""
    state = _get_state(ctx)
    payload = state.client.post_reading(sensor_id, metric_type, metric_value, timestamp)
    typer.secho("Reading stored.", fg=typer.colors.GREEN)
    render_reading(payload)


@app.command("query")
def query_command(
    ctx: typer.Context,
    sensor_id: int = typer.Argument(..., help="Numeric sensor identifier."),
    metric_type: str = typer.Argument(..., help="Metric type to match."),
    start: str = typer.Option(..., "--start", help="ISO-8601 window start."),
    end: str = typer.Option(..., "--end", help="ISO-8601 window end."),
) -> None:
    """List readings for one sensor and metric type within a window."""
    state = _get_state(ctx)
    readings = state.client.query_readings(sensor_id, metric_type, start, end)
    render_readings(readings)


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    sensors: Optional[str] = typer.Option(None, "--sensors", help="e.g. 1,2,3"),
    metrics: Optional[str] = typer.Option(None, "--metrics", help="e.g. temperature,humidity"),
    stat: str = typer.Option("avg", "--stat", help="min, max, sum or avg."),
    start: Optional[str] = typer.Option(None, "--start", help="ISO-8601 window start."),
    end: Optional[str] = typer.Option(None, "--end", help="ISO-8601 window end."),
) -> None:
    """Show aggregated statistics per sensor and metric type."""
    state = _get_state(ctx)
    payload = state.client.get_stats(
        sensors=sensors, metrics=metrics, stat=stat, start=start, end=end
    )
    render_stats(payload)
